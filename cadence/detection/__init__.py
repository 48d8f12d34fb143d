"""Signal classification and stabilisation stages of the pitch tracker."""

from .signal_gate import SignalGate, GateResult
from .stability_analyzer import RollingWindow, StabilityTracker
from .sustain_gate import DetectionPhase, SustainGate, SustainResult
from .smoother import ExponentialSmoother, smooth
from .in_tune import InTuneAccumulator

__all__ = [
    "SignalGate",
    "GateResult",
    "RollingWindow",
    "StabilityTracker",
    "DetectionPhase",
    "SustainGate",
    "SustainResult",
    "ExponentialSmoother",
    "smooth",
    "InTuneAccumulator",
]
