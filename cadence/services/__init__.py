"""Services wiring audio input, pitch estimation and tracking together."""

from .tuner_service import TunerService

__all__ = ["TunerService"]
