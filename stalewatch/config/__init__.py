from .loader import load_config
from .models import (
    StalenessConfig,
    StalewatchConfig,
)

__all__ = [
    "StalenessConfig",
    "StalewatchConfig",
    "load_config",
]
