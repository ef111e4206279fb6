from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    log_level: str = "INFO"

    # Keys
    openai_api_key: str | None = None

    # Models
    openai_image_model: str = "gpt-image-1"
    openai_evaluation_model: str = "gpt-4o"
    openai_analysis_model: str = "gpt-4.1-mini"
    openai_copy_model: str = "gpt-4"

    image_size: str = "1024x1024"

    # Refinement loop
    initial_quality: str = "low"
    edit_quality: str = "medium"
    max_attempts: int = 4
    max_attempts_ceiling: int = 5
    evaluation_max_tokens: int = 300
    approval_token: str = "APPROVED"

    # Pricing (USD). Image operations are flat per 1024x1024 image.
    image_operation_cost: float = 0.040
    evaluation_prompt_cost_per_1k: float = 0.005
    evaluation_completion_cost_per_1k: float = 0.015

    # Persona flows
    persona_variation_limit: int = 3
    persona_variation_quality: str = "medium"
    charge_failed_persona_edits: bool = False
    persona_analysis_max_tokens: int = 500
    copy_rewrite_max_tokens: int = 200
    copy_temperature: float = 0.7
    personas_file: str | None = None

    # Pre-supplied ad images for the copy-variation picker.
    ads_dir: str = "ads"


settings = Settings()
