from fastapi import Depends, Request

from core.services import Services
from utils.validation.inputs import validate_identifier


def get_services(request: Request) -> Services:
    """Services built by the application lifespan"""
    return request.app.state.services


def valid_identifier(id: str) -> str:
    """Path parameter ``id``, rejected with 400 if it is not a safe path segment"""
    return validate_identifier(id)


ServicesDep = Depends(get_services)
IdentifierDep = Depends(valid_identifier)
