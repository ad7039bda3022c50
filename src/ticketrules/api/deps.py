"""Request-scoped access to the objects create_app() puts on app.state."""

from __future__ import annotations

from fastapi import Header, Request

from ticketrules.editor import BatchRuleEditor
from ticketrules.pricing import PricingSession
from ticketrules.resolver import Resolver
from ticketrules.storage import RuleStore


def get_store(request: Request) -> RuleStore:
    return request.app.state.store


def get_resolver(request: Request) -> Resolver:
    return request.app.state.resolver


def get_editor(request: Request) -> BatchRuleEditor:
    return request.app.state.editor


async def get_session(
    request: Request,
    x_pricing_session: str | None = Header(None, description="Storefront session id; rates and quotes are cached per session"),
) -> PricingSession:
    return request.app.state.sessions.get(x_pricing_session)


def get_actor(x_admin_user: str | None = Header(None, description="Recorded as created_by / updated_by")) -> str | None:
    return x_admin_user or None
