"""REST API for the active rule catalog."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["rules"])


@router.get("/rules")
async def list_rules(request: Request):
    catalog = request.app.state.catalog
    return {
        "catalog": catalog.name,
        "rules": [
            {
                "id": rule.id,
                "title": rule.title,
                "severity": rule.severity.value,
                "invert": rule.invert,
                "kind": rule.kind.value,
            }
            for rule in catalog
        ],
    }
