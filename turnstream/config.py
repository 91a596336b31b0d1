"""Configuration system for turnstream.

Supports loading from YAML files, dicts, or programmatic construction via
Pydantic models. The config selects the LLM backend, the agent persona, the
function webhooks and the server settings.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from turnstream.persona import (
    DEFAULT_AGENT_NAME,
    DEFAULT_COMPANY_NAME,
    DEFAULT_FAREWELL,
    DEFAULT_SYSTEM_PROMPT,
)
from turnstream.pipeline.orchestrator import OrchestratorConfig


class ServerConfig(BaseModel):
    """Where the websocket server listens."""

    host: str = "0.0.0.0"
    port: int = 8080
    websocket_path: str = "/llm-websocket"


class LLMConfig(BaseModel):
    """Generative backend settings."""

    provider: str = "groq"
    api_key: str = ""
    model: str = "llama3-70b-8192"
    base_url: str | None = None
    temperature: float = 0.1
    max_tokens: int = 200
    frequency_penalty: float = 1.0
    presence_penalty: float = 1.0
    stream_idle_timeout: float | None = 15.0

    def resolved_api_key(self) -> str:
        """The configured key, or OPENAI_APIKEY from the environment."""
        return self.api_key or os.getenv("OPENAI_APIKEY", "")

    def provider_kwargs(self) -> dict[str, Any]:
        """Constructor kwargs for the provider registry."""
        kwargs: dict[str, Any] = {
            "api_key": self.resolved_api_key(),
            "model": self.model,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return kwargs


class AgentConfig(BaseModel):
    """Persona and turn behaviour."""

    agent_name: str = DEFAULT_AGENT_NAME
    company_name: str = DEFAULT_COMPANY_NAME
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    farewell: str = DEFAULT_FAREWELL
    fallback_message: str = OrchestratorConfig.fallback_message
    argument_error_message: str = OrchestratorConfig.argument_error_message
    followup: Literal["template", "llm"] = "template"


class FunctionsConfig(BaseModel):
    """Webhook endpoints for the externally-backed functions."""

    calendar_webhook_url: str = ""
    crm_webhook_url: str = ""
    timeout: float = 10.0


class ChannelConfig(BaseModel):
    """Optional channel protocol behaviour."""

    send_config: bool = False
    answer_ping_pong: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level turnstream configuration.

    Examples:
        # Programmatic
        config = AppConfig(
            llm=LLMConfig(provider="openai", model="gpt-4o-mini"),
            functions=FunctionsConfig(calendar_webhook_url="https://..."),
        )

        # From YAML
        config = AppConfig.from_yaml("agent.yaml")

        # Shorthand
        config = AppConfig.from_dict({
            "llm_provider": "groq",
            "port": 8080,
            "calendar_webhook_url": "https://...",
        })
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    functions: FunctionsConfig = Field(default_factory=FunctionsConfig)
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> AppConfig:
        """Load configuration from a YAML file.

        ${VAR} references in string values are expanded from the environment.
        """
        path = Path(path)
        with path.open() as f:
            data = yaml.safe_load(f) or {}
        return cls._from_raw(expand_env(data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Load configuration from a dictionary.

        Supports both the nested format and a flat shorthand:

        Nested format:
            {"llm": {"provider": "groq"}, "server": {"port": 8080}}

        Shorthand format:
            {"llm_provider": "groq", "port": 8080}
        """
        return cls._from_raw(dict(data))

    @classmethod
    def _from_raw(cls, data: dict[str, Any]) -> AppConfig:
        """Normalize and construct config from a raw dict."""
        flat_mappings = {
            "host": ("server", "host"),
            "port": ("server", "port"),
            "websocket_path": ("server", "websocket_path"),
            "llm_provider": ("llm", "provider"),
            "api_key": ("llm", "api_key"),
            "model": ("llm", "model"),
            "system_prompt": ("agent", "system_prompt"),
            "followup": ("agent", "followup"),
            "calendar_webhook_url": ("functions", "calendar_webhook_url"),
            "crm_webhook_url": ("functions", "crm_webhook_url"),
            "log_level": ("logging", "level"),
        }

        for flat_key, (section, nested_key) in flat_mappings.items():
            if flat_key in data:
                section_data = dict(data.get(section) or {})
                section_data[nested_key] = data.pop(flat_key)
                data[section] = section_data

        return cls(**data)


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: Any) -> Any:
    """Recursively replace ${VAR} in strings with environment values.

    Unset variables expand to "".
    """
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    return value


def load_config(source: str | Path | dict[str, Any] | AppConfig | None = None) -> AppConfig:
    """Load an AppConfig from any supported source.

    Args:
        source: A YAML file path, a dict, an existing AppConfig, or None
            for defaults.

    Returns:
        An AppConfig instance.
    """
    if source is None:
        return AppConfig()
    if isinstance(source, AppConfig):
        return source
    if isinstance(source, dict):
        return AppConfig.from_dict(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return AppConfig.from_yaml(path)
    raise TypeError(f"Cannot load config from {type(source)}")


# Default YAML template for `turnstream init`
DEFAULT_CONFIG_YAML = """\
# turnstream configuration

server:
  host: 0.0.0.0
  port: 8080
  websocket_path: /llm-websocket   # platform connects to {path}/{call_id}

llm:
  provider: groq          # groq | openai
  api_key: ${OPENAI_APIKEY}
  model: llama3-70b-8192
  temperature: 0.1
  max_tokens: 200
  stream_idle_timeout: 15

agent:
  agent_name: Katie
  company_name: PestAway Solutions
  farewell: Thank you for calling PestAway Solutions!
  fallback_message: "I'm sorry, I had a brief issue on my end. Could you say that again?"
  argument_error_message: "I'm sorry, I couldn't process that request. Could you repeat it?"
  followup: template      # template | llm

functions:
  calendar_webhook_url: ${CALENDAR_WEBHOOK_URL}
  crm_webhook_url: ${CRM_WEBHOOK_URL}
  timeout: 10

channel:
  send_config: false
  answer_ping_pong: true

logging:
  level: INFO
"""
