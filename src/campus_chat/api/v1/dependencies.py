"""Shared API dependencies for authentication and runtime access."""

import asyncio
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from campus_chat.services.chat_service import ChatService
from campus_chat.services.errors import AuthenticationFailed
from campus_chat.services.factory import ChatRuntime

# HTTP Bearer scheme; missing credentials are reported by get_current_user_id
bearer_scheme = HTTPBearer(auto_error=False)


def get_runtime(connection: HTTPConnection) -> ChatRuntime:
    """Return the chat runtime attached to the application at startup."""
    runtime: ChatRuntime = connection.app.state.runtime
    return runtime


RuntimeDep = Annotated[ChatRuntime, Depends(get_runtime)]


def get_chat_service(runtime: RuntimeDep) -> ChatService:
    return runtime.service


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    runtime: RuntimeDep,
) -> int:
    """Get the authenticated user's id from the bearer token.

    Raises:
        AuthenticationFailed: If the token is missing or invalid, or the user
            no longer exists.
    """
    if credentials is None:
        raise AuthenticationFailed("Authentication token missing")
    user_id = runtime.verifier.verify(credentials.credentials)
    if not await asyncio.to_thread(runtime.directory.exists, user_id):
        raise AuthenticationFailed("User not found")
    return user_id


# Type alias for current user dependency
CurrentUserIdDep = Annotated[int, Depends(get_current_user_id)]
