from .loader import load_config
from .models import (
    AirdropConfig,
    CsvConfig,
    DistributionConfig,
    MerkledropConfig,
    ProofConfig,
    TreeSourceConfig,
)

__all__ = [
    "AirdropConfig",
    "CsvConfig",
    "DistributionConfig",
    "MerkledropConfig",
    "ProofConfig",
    "TreeSourceConfig",
    "load_config",
]
