from __future__ import annotations

from formrelay.services.actions.base import ActionHandler, failed, succeeded
from formrelay.services.actions.pipeline import ActionPipeline, build_pipeline

__all__ = [
    "ActionHandler",
    "ActionPipeline",
    "build_pipeline",
    "failed",
    "succeeded",
]
