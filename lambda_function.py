"""AWS Lambda handler for the FED chat assistant."""
import base64
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from assistant.chatbot import ChatbotService, build_service
from config.settings import ConfigurationError, load_settings


# Configure JSON logging
# Attributes every LogRecord carries; anything else came from extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', None, None))
) | {'message', 'asctime', 'taskName'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


# Built on the first invocation and reused while the container stays warm
_service: Optional[ChatbotService] = None


def get_service() -> ChatbotService:
    """
    Return the container's chatbot service, building it on first use.

    Settings are validated here, before any route is served. A bad
    configuration fails every request with 500 until it is fixed; nothing
    is cached, so the next invocation validates again.

    Returns:
        ChatbotService wired from environment settings

    Raises:
        ConfigurationError: If required settings are missing
    """
    global _service
    if _service is None:
        # JSON logging has to be in place before settings errors are logged
        setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
        settings = load_settings()
        _service = build_service(settings)
    return _service


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def _route(event: Dict[str, Any]) -> tuple[str, str]:
    """
    Extract method and path from an API Gateway proxy event.

    Supports both REST API (v1) and HTTP API (v2) payloads.
    """
    http = (event.get('requestContext') or {}).get('http') or {}
    method = event.get('httpMethod') or http.get('method') or ''
    path = event.get('rawPath') or event.get('path') or ''
    return method.upper(), path.rstrip('/')


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for chat, health and stats requests.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response dict
    """
    logger = logging.getLogger(__name__)
    start_time = time.time()
    method, path = _route(event)

    try:
        service = get_service()
    except ConfigurationError as e:
        logger.error(
            f"Service configuration invalid: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Service is not configured',
            'error_type': type(e).__name__
        })

    logger.info(
        f"Request received: {method} {path}",
        extra={'method': method, 'path': path}
    )

    if method == 'POST' and path.endswith('/chat'):
        try:
            raw_body = event.get('body') or '{}'
            if event.get('isBase64Encoded'):
                raw_body = base64.b64decode(raw_body).decode('utf-8')
            body = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return _response(400, {'message': 'Request body must be JSON'})
        if not isinstance(body, dict):
            return _response(400, {'message': 'Request body must be a JSON object'})

        result = service.send_message(body.get('message'))
        status_code, payload = 200, result.to_dict()

    elif method == 'GET' and path.endswith('/health'):
        health = service.ping()
        status_code = 200 if health.healthy else 503
        payload = health.to_dict()

    elif method == 'GET' and path.endswith('/stats'):
        status_code, payload = 200, service.get_stats()

    else:
        return _response(404, {'message': f"No route for {method} {path}"})

    duration = time.time() - start_time
    logger.info(
        f"Request completed: {method} {path}",
        extra={
            'status_code': status_code,
            'duration_seconds': round(duration, 2)
        }
    )
    return _response(status_code, payload)
