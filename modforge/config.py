"""Runtime settings loaded from environment variables.

Uses ``pydantic-settings`` for env-var loading, type coercion and ``.env``
file support.  Every variable carries the ``MODFORGE_`` prefix, e.g.
``MODFORGE_RUN_IN_PROCESS=1``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide knobs for logging and delegate invocation."""

    model_config = SettingsConfigDict(
        env_prefix="MODFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------------------------------
    # Delegate invocation.
    #
    # RUN_IN_PROCESS enables the fast path that re-enters the tool's own entry
    # point instead of spawning the copy installed in the submodule.  Only
    # non-capturing calls ever take it.
    # -------------------------------------------------------------------------
    RUN_IN_PROCESS: bool = False
    DELEGATE_EXECUTABLE: str = "modforge"  # file name inside a module root
    DELEGATE_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    DELEGATE_RETRY_DELAY_S: float = Field(default=2.0, ge=0)


settings = Settings()
