from functools import lru_cache

from dotoracle.config import get_settings
from dotoracle.engine import OracleEngine
from dotoracle.storage import KeyValueStore


@lru_cache(maxsize=1)
def get_engine() -> OracleEngine:
    settings = get_settings()
    return OracleEngine(KeyValueStore(settings.db_path), settings)
