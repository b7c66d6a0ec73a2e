"""AWS session helpers."""

from .session import SessionParameters, client_config, new_aws_session

__all__ = ["SessionParameters", "client_config", "new_aws_session"]
