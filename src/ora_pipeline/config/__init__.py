from .loader import load_config, load_config_with_overrides
from .schema import (
    AnnotationConfig,
    InputConfig,
    LibraryConfig,
    MappingConfig,
    OutputConfig,
    PipelineConfig,
    RunConfig,
    Thresholds,
    UniverseConfig,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "InputConfig",
    "AnnotationConfig",
    "MappingConfig",
    "UniverseConfig",
    "Thresholds",
    "LibraryConfig",
    "OutputConfig",
    "RunConfig",
]
