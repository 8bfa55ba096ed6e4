# servicehub/router/routers.py

from fastapi import FastAPI
from servicehub.auth.auth_controller import router as auth_router
from servicehub.modules.bookings.bookings_controller import router as bookings_router
from servicehub.modules.messages.messages_controller import router as messages_router
from servicehub.modules.notifications.notifications_controller import router as notifications_router
from servicehub.modules.chat.chat_controller import router as chat_router

def include_routers(app: FastAPI) -> None:
    """Include all API routers in the FastAPI application."""
    app.include_router(auth_router)
    app.include_router(bookings_router)
    app.include_router(messages_router)
    app.include_router(notifications_router)
    app.include_router(chat_router)
