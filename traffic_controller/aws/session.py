from __future__ import annotations

from dataclasses import dataclass

import boto3
from botocore.config import Config

from traffic_controller.core.errors import ConfigurationError

DEFAULT_MAX_RETRIES = 10
ASSUME_ROLE_DURATION_SECONDS = 3600


@dataclass(slots=True)
class SessionParameters:
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    iam_role: str = ""
    iam_session: str = ""
    max_retries: int = 0


def client_config(parameters: SessionParameters) -> Config:
    """botocore client configuration carrying the retry limit."""
    max_retries = parameters.max_retries or DEFAULT_MAX_RETRIES
    return Config(
        region_name=parameters.region,
        retries={"max_attempts": max_retries, "mode": "standard"},
    )


def new_aws_session(parameters: SessionParameters) -> boto3.Session:
    """Build a boto3 session from explicit parameters.

    Static keys win over the default credential chain; an IAM role, when set,
    is assumed on top of whichever credentials the session resolved.
    """
    if not parameters.region:
        raise ConfigurationError("Missing aws region (required).")

    if parameters.max_retries == 0:
        parameters.max_retries = DEFAULT_MAX_RETRIES

    if parameters.access_key and parameters.secret_key:
        session = boto3.Session(
            aws_access_key_id=parameters.access_key,
            aws_secret_access_key=parameters.secret_key,
            region_name=parameters.region,
        )
    else:
        session = boto3.Session(region_name=parameters.region)

    if parameters.iam_role:
        session = _assume_role_session(session, parameters)

    return session


def _assume_role_session(
    session: boto3.Session, parameters: SessionParameters
) -> boto3.Session:
    sts = session.client("sts", config=client_config(parameters))
    response = sts.assume_role(
        RoleArn=parameters.iam_role,
        RoleSessionName=parameters.iam_session or "default",
        DurationSeconds=ASSUME_ROLE_DURATION_SECONDS,
    )
    credentials = response["Credentials"]
    return boto3.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
        region_name=parameters.region,
    )
