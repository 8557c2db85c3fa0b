"""Runtime settings loaded from environment variables."""
import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_API_URL = 'https://generativelanguage.googleapis.com/v1beta/models'

REQUIRED_VARS = ['API_BASE_URL', 'GEMINI_MODEL', 'SYSTEM_PROMPT']


class ConfigurationError(Exception):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True)
class Settings:
    """Validated assistant configuration."""
    api_base_url: str
    gemini_api_key: str
    gemini_model: str
    system_prompt: str
    gemini_api_url: str = DEFAULT_GEMINI_API_URL
    chatbot_name: str = 'AskFED'
    team_cache_ttl: float = 120.0
    events_cache_ttl: float = 120.0
    max_retries: int = 3
    initial_retry_delay: float = 1.0
    data_timeout: float = 10.0
    generation_timeout: float = 30.0
    log_level: str = 'INFO'


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables, failing fast on bad input.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If any required value is missing or malformed
    """
    env = os.environ if environ is None else environ
    problems: List[str] = []

    missing = [name for name in REQUIRED_VARS if not env.get(name, '').strip()]

    api_key = env.get('GEMINI_API_KEY', '').strip()
    if not api_key:
        parameter_name = env.get('GEMINI_API_KEY_PARAMETER', '').strip()
        if parameter_name:
            api_key = _read_ssm_parameter(parameter_name, problems)
        else:
            missing.append('GEMINI_API_KEY')

    if missing:
        problems.insert(
            0, f"Missing required environment variables: {', '.join(missing)}"
        )

    team_ttl = _parse_number(env, 'TEAM_CACHE_TTL_SECONDS', 120.0, float, problems)
    events_ttl = _parse_number(env, 'EVENTS_CACHE_TTL_SECONDS', 120.0, float, problems)
    max_retries = _parse_number(env, 'MAX_RETRIES', 3, int, problems)
    retry_delay = _parse_number(env, 'INITIAL_RETRY_DELAY_SECONDS', 1.0, float, problems)
    data_timeout = _parse_number(env, 'DATA_TIMEOUT_SECONDS', 10.0, float, problems)
    generation_timeout = _parse_number(
        env, 'GENERATION_TIMEOUT_SECONDS', 30.0, float, problems
    )

    if isinstance(max_retries, int) and max_retries < 1:
        problems.append('MAX_RETRIES must be at least 1')

    if problems:
        raise ConfigurationError('; '.join(problems))

    return Settings(
        api_base_url=env['API_BASE_URL'].strip().rstrip('/'),
        gemini_api_key=api_key,
        gemini_model=env['GEMINI_MODEL'].strip(),
        system_prompt=env['SYSTEM_PROMPT'],
        gemini_api_url=env.get('GEMINI_API_URL', '').strip().rstrip('/')
        or DEFAULT_GEMINI_API_URL,
        chatbot_name=env.get('CHATBOT_NAME', '').strip() or 'AskFED',
        team_cache_ttl=team_ttl,
        events_cache_ttl=events_ttl,
        max_retries=max_retries,
        initial_retry_delay=retry_delay,
        data_timeout=data_timeout,
        generation_timeout=generation_timeout,
        log_level=env.get('LOG_LEVEL', 'INFO').upper(),
    )


def _parse_number(env, name, default, cast, problems):
    raw = env.get(name, '').strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        problems.append(f"{name} must be a number, got {raw!r}")
        return default
    if value < 0:
        problems.append(f"{name} must not be negative")
    return value


def _read_ssm_parameter(parameter_name: str, problems: List[str]) -> str:
    """
    Resolve the Gemini API key from an SSM SecureString parameter.

    Args:
        parameter_name: Name of the SSM parameter
        problems: Collected validation problems, appended to on failure

    Returns:
        Decrypted parameter value, or empty string on failure
    """
    try:
        ssm = boto3.client('ssm')
        response = ssm.get_parameter(Name=parameter_name, WithDecryption=True)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Could not read SSM parameter {parameter_name}: {e}")
        problems.append(f"GEMINI_API_KEY_PARAMETER {parameter_name} could not be read")
        return ''

    value = response['Parameter']['Value'].strip()
    if not value:
        problems.append(f"GEMINI_API_KEY_PARAMETER {parameter_name} is empty")
    return value
