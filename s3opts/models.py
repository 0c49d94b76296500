"""Data models and errors shared across s3opts."""

from dataclasses import dataclass


class S3OptionsError(Exception):
    """Base class for all s3opts errors."""

    pass


class ValidationError(S3OptionsError):
    """Raised when options violate a documented constraint."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class PipelineWiringError(S3OptionsError):
    """Raised when a stage cannot be inserted into the request pipeline."""

    pass


class ConfigError(S3OptionsError):
    """Raised when configuration loading fails."""

    pass


@dataclass(frozen=True)
class StaticCredentials:
    """Static access key credentials that override the AWS config chain."""

    key: str
    secret: str
    token: str = ""

    def validate(self) -> None:
        """Check that the key pair is usable for signing.

        Raises:
            ValidationError: If the key or secret is blank.
        """
        if not self.key.strip():
            raise ValidationError("auth.key", "cannot be blank")
        if not self.secret.strip():
            raise ValidationError("auth.secret", "cannot be blank")

    def client_kwargs(self) -> dict[str, str]:
        """Credential arguments for ``boto3.client``."""
        kwargs = {
            "aws_access_key_id": self.key,
            "aws_secret_access_key": self.secret,
        }
        if self.token:
            kwargs["aws_session_token"] = self.token
        return kwargs

    def __repr__(self) -> str:
        return f"StaticCredentials(key={self.key!r}, secret='***')"
