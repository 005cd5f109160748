# response_formatting.py
"""Output record for a scored request and its JSON serialization."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict

from config import SQFT_TO_SQM
from request_validation import RequestRecord

__all__ = ["PredictionResult", "format_response", "serialize"]

SQUARE_METERS_KEY = "Square Meters"
PREDICTED_REVENUE_KEY = "Predicted Revenue"


@dataclass(frozen=True)
class PredictionResult:
    square_meters: float
    predicted_revenue: float

    def to_dict(self) -> Dict[str, float]:
        return {
            SQUARE_METERS_KEY: self.square_meters,
            PREDICTED_REVENUE_KEY: self.predicted_revenue,
        }


def format_response(request: RequestRecord, prediction: float) -> PredictionResult:
    return PredictionResult(
        square_meters=float(request.square_footage) * SQFT_TO_SQM,
        predicted_revenue=float(prediction),
    )


def serialize(result: PredictionResult) -> str:
    return json.dumps(result.to_dict())
