"""FastAPI dependencies resolving the stores and clients created at start-up."""

from fastapi import Request


def get_user_store(request: Request):
    return request.app.state.user_store


def get_event_log(request: Request):
    return request.app.state.event_log


def get_n8n_client(request: Request):
    return request.app.state.n8n_client
