# insight_backend/api/deps.py

from fastapi import Header, Request

from insight_backend.services.data_insight_service import DataInsightService


def get_insight_service(request: Request) -> DataInsightService:
    return request.app.state.services.insight_service


def get_requester_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Requester identity set by the upstream auth layer."""
    return x_user_id
