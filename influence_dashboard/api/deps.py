from __future__ import annotations

from fastapi import Request

from ..services.queries import DashboardQueries


def get_queries(request: Request) -> DashboardQueries:
    """
    The app-wide query facade, built once in create_app().
    """
    return request.app.state.queries
