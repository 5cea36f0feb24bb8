from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Branding
    standard_title: str = "INNOV'ACTU"
    radar_title: str = "RADAR"
    newsletter_subtitle: str = "Strategic Newsletter"
    editorial_author: str = "The Editorial Team"
    organization_name: str = "Newsletter Studio"

    # Footer
    footer_address: str = ""
    footer_email: str = ""
    unsubscribe_text: str = "Unsubscribe"
    # Delivery systems substitute their own per-recipient link for this value
    unsubscribe_url: str = "#"

    # Compiled HTML
    html_lang: str = "en"

    # Canvas
    drag_threshold_px: float = Field(default=8.0, ge=0)

    # Save target
    save_target: str = Field(default="file", pattern="^(file|http)$")
    output_dir: str = "dist"
    save_base_url: str = ""
    save_api_key: str = ""
    save_timeout: float = 15.0

    # Web
    host: str = "0.0.0.0"
    port: int = 8080
    # Open editor sessions kept in memory; the least recently used goes first
    max_sessions: int = Field(default=100, ge=1)

    def variant_title(self, variant: str) -> str:
        """Masthead title for a template variant."""
        return self.radar_title if variant == "radar" else self.standard_title


settings = Settings()
