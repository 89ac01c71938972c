"""
Login against the admin server.

A successful login sets a ``jwt`` cookie, which the underlying httpx client
keeps and sends on later requests. Rejected credentials raise
``Unauthorized`` through the transport.
"""

from typing import Optional

from pydantic import Field

from .logging import EventType, get_logger
from .models.base import WireModel
from .transport import VersionedTransport


class LoginRequest(WireModel):
    access_key: str = Field(..., alias="ak")
    secret_key: str = Field(..., alias="sk")


class AuthApi:
    def __init__(self, transport: VersionedTransport):
        self.transport = transport
        self.logger = get_logger()

    async def login(self, access_key: str, secret_key: str) -> Optional[str]:
        """
        Authenticate with an access key / secret key pair.

        Returns:
            The session JWT if the server issued one (servers without a
            signing secret accept the login without issuing a token)
        """
        body = LoginRequest(access_key=access_key, secret_key=secret_key).to_wire()
        await self.transport.request("POST", "/auth/login", body=body)

        token = self.transport.cookies.get("jwt")
        self.logger.info(
            f"Logged in as {access_key}",
            event_type=EventType.AUTH_SUCCESS,
            metadata={"access_key": access_key, "token_issued": token is not None},
        )
        return token
