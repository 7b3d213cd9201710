from .config import EngineConfig, load_config

__all__ = ["EngineConfig", "load_config"]
