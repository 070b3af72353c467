#    Copyright 2025, Stankevich Andrey, stankevich.as@phystech.edu

#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at

#        http://www.apache.org/licenses/LICENSE-2.0

#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.


"""
Configuration settings for Telegram bot derived from pydantic BaseSettings.

This script defines application-wide configuration options
that are loaded from .env file, providing type validation and defaults.
"""

from functools import lru_cache
import os

from pydantic import Field, model_validator

from pydantic_settings import BaseSettings, SettingsConfigDict


# Get the absolute path to the directory containing this file
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Absolute path to the .env file in the same directory as this script
ENV_PATH = os.path.join(BASE_DIR, '.env')

_COGNITIVE_BASE = "https://westus.api.cognitive.microsoft.com"


class Settings(BaseSettings):
    """Application settings loaded from .env file.

    Attributes:
        bot_token (str): Secret token used to authenticate the bot
        with the Telegram Bot API.
        webhook_base (str, optional): The base HTTPS URL exposed
        for receiving updates from Telegram via webhooks.
        secret_token (str, optional): Secret token included as part
        of the webhook URL path and checked against the request header.
        Required in webhook mode.
        poll_mode (bool, default=False): Whether to use updates
        based on polling or webhook.
        poll_interval (float, default=1.0): Seconds to wait between
        polling requests.
        emotion_subscription_key, face_subscription_key,
        vision_subscription_key (str): keys of the Emotion, Face and
        Computer Vision services.
        emotion_endpoint, face_endpoint, vision_endpoint (str): base
        URLs of the same services, including the API version.
        request_timeout (float, default=30.0): total timeout of a
        single remote call, seconds.
        font_path (str, optional): TrueType font used to label faces;
        the font bundled with Pillow is used when unset.
        jpeg_quality (int, default=90): quality of result images.
        max_concurrent_tasks (int, default=0): upper bound on
        simultaneously running analysis tasks, 0 means unbounded.
        log_level (str, default=INFO): root logging level.

    Environment variables:
        - BOT_TOKEN: Telegram bot authentication token, as issued by BotFather.
        - WEBHOOK_BASE (optional): Public HTTPS endpoint
            (e.g., https://example.com/bot1234)
        - SECRET_TOKEN (optional): Secret token for securing webhook endpoint.
        - POLL_MODE: If set true, uses polling update mode.
        - POLL_INTERVAL
        - EMOTION_SUBSCRIPTION_KEY, EMOTION_ENDPOINT
        - FACE_SUBSCRIPTION_KEY, FACE_ENDPOINT
        - VISION_SUBSCRIPTION_KEY, VISION_ENDPOINT
        - REQUEST_TIMEOUT
        - FONT_PATH
        - JPEG_QUALITY
        - MAX_CONCURRENT_TASKS
        - LOG_LEVEL

    Configuration is loaded at startup. Fields can be overridden by setting
    the respective environment variables or by creating a .env file
    next to this script.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_PATH, env_file_encoding='utf-8', extra='ignore')

    bot_token: str = Field(
        ..., json_schema_extra={"env": "BOT_TOKEN"})
    webhook_base: str | None = Field(
        default=None, json_schema_extra={"env": "WEBHOOK_BASE"})
    secret_token: str | None = Field(
        default=None, json_schema_extra={"env": "SECRET_TOKEN"})
    poll_mode: bool = Field(
        default=False, json_schema_extra={"env": "POLL_MODE"})
    poll_interval: float = Field(
        default=1.0, ge=0.0, json_schema_extra={"env": "POLL_INTERVAL"})

    emotion_subscription_key: str = Field(
        default="", json_schema_extra={"env": "EMOTION_SUBSCRIPTION_KEY"})
    emotion_endpoint: str = Field(
        default=f"{_COGNITIVE_BASE}/emotion/v1.0",
        json_schema_extra={"env": "EMOTION_ENDPOINT"})
    face_subscription_key: str = Field(
        default="", json_schema_extra={"env": "FACE_SUBSCRIPTION_KEY"})
    face_endpoint: str = Field(
        default=f"{_COGNITIVE_BASE}/face/v1.0",
        json_schema_extra={"env": "FACE_ENDPOINT"})
    vision_subscription_key: str = Field(
        default="", json_schema_extra={"env": "VISION_SUBSCRIPTION_KEY"})
    vision_endpoint: str = Field(
        default=f"{_COGNITIVE_BASE}/vision/v1.0",
        json_schema_extra={"env": "VISION_ENDPOINT"})
    request_timeout: float = Field(
        default=30.0, gt=0.0, json_schema_extra={"env": "REQUEST_TIMEOUT"})

    font_path: str | None = Field(
        default=None, json_schema_extra={"env": "FONT_PATH"})
    jpeg_quality: int = Field(
        default=90, ge=1, le=100, json_schema_extra={"env": "JPEG_QUALITY"})
    max_concurrent_tasks: int = Field(
        default=0, ge=0, json_schema_extra={"env": "MAX_CONCURRENT_TASKS"})
    log_level: str = Field(
        default="INFO", json_schema_extra={"env": "LOG_LEVEL"})

    @model_validator(mode="after")
    def check_webhook_mode(self) -> "Settings":
        """Webhook mode cannot work without a base URL and a secret."""
        if not self.poll_mode and not (self.webhook_base and self.secret_token):
            raise ValueError(
                "WEBHOOK_BASE and SECRET_TOKEN are required "
                "unless POLL_MODE is enabled"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
