
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Encode proto1 MessageSets instead of rejecting them
    protojson_legacy: bool = False
    # Nesting guard for recursive / self-referencing message graphs
    protojson_max_depth: int = 100
    protojson_log_level: str = "WARNING"

settings = Settings()
