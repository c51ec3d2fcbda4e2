from fastapi import Request

from app.container import Container
from domain.services.orchestrator import Orchestrator


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> Orchestrator:
    return get_container(request).orchestrator
