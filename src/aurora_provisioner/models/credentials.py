"""
Credential Models

Shapes of the JSON documents stored in Secrets Manager for the administrative
and per-user credentials.
"""

from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

# Secret key holding the proxy endpoint inside a user secret
PROXY_KEY = "proxyHost"


class AdminCredential(BaseModel):
    """Administrative (manager) credential. Read-only input."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str
    port: int = 5432
    username: str
    password: str = Field(repr=False)
    engine: Optional[str] = None


class ResourceCredential(BaseModel):
    """
    Credential of the login user being provisioned.

    Unknown keys are preserved so a write-back never drops fields added by
    other tooling (for example the rotation function).
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    username: str
    password: str = Field(repr=False)
    host: Optional[str] = None
    port: Optional[int] = None
    engine: Optional[str] = None
    proxy_endpoint: Optional[str] = Field(default=None, alias=PROXY_KEY)


class ConnectionConfig(BaseModel):
    """Parameters used to open an administrative connection."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    user: str
    password: str = Field(repr=False)

    @classmethod
    def from_admin(cls, admin: AdminCredential) -> "ConnectionConfig":
        return cls(host=admin.host, port=admin.port, user=admin.username, password=admin.password)


class SecretsResult(BaseModel):
    """Outcome of reconciling a user secret."""

    model_config = ConfigDict(frozen=True)

    connection_config: ConnectionConfig
    username: str
    password: str = Field(repr=False)
    updated: bool = False
