from stalewatch.cli import app

app()
