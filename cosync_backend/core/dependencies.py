# External-service clients are built once in the app lifespan and handed to routes from app.state.
from fastapi import Request


def get_sms_provider(request: Request):
    return request.app.state.sms_provider


def get_identity_provider(request: Request):
    return request.app.state.identity_provider


def get_storage_provider(request: Request):
    return request.app.state.storage_provider
