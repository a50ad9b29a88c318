from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feelflick.core.constants import DEFAULT_CACHE_TTL_SECONDS, OMDB_DAILY_QUOTA


_PLACEHOLDER_VALUES = (
    "your_supabase_key_here",
    "your_tmdb_api_key_here",
    "PUT_YOUR_TMDB_KEY_HERE",
    "your_omdb_api_key_here",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""

    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_language: str = "en-US"
    tmdb_page_delay_secs: float = 1.7

    omdb_api_key: str = ""
    omdb_base_url: str = "http://www.omdbapi.com/"
    omdb_daily_quota: int = OMDB_DAILY_QUOTA
    omdb_request_delay_secs: float = 1.0

    http_timeout_secs: float = 10.0

    recommendation_cache_ttl_secs: float = DEFAULT_CACHE_TTL_SECONDS

    quality_batch_delay_secs: float = 0.05
    quality_batch_page_size: int = 500

    import_checkpoint_path: str = ".import_progress.json"

    @model_validator(mode="after")
    def validate_api_keys(self) -> "Settings":
        """Reject keys that were copied from an example env file unchanged."""
        if self.supabase_service_role_key in _PLACEHOLDER_VALUES:
            raise ValueError(
                "SUPABASE_SERVICE_ROLE_KEY is not properly configured. "
                "Copy it from Project Settings -> API in the Supabase dashboard"
            )
        if self.tmdb_api_key in _PLACEHOLDER_VALUES:
            raise ValueError(
                "TMDB_API_KEY is not properly configured. "
                "Get your API key from https://www.themoviedb.org/settings/api"
            )
        if self.omdb_api_key in _PLACEHOLDER_VALUES:
            raise ValueError(
                "OMDB_API_KEY is not properly configured. "
                "Get your API key from https://www.omdbapi.com/apikey.aspx"
            )
        return self


settings = Settings()
