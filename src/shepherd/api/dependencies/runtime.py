"""Process-wide collaborators created in the application lifespan."""

from typing import Annotated

from fastapi import Depends, Request

from src.shepherd.core.clock import Clock
from src.shepherd.core.notifications import NotificationDispatcher


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


Dispatcher = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
AppClock = Annotated[Clock, Depends(get_clock)]
