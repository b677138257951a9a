#!/usr/bin/env python3

import json
import sys

from pydantic import ValidationError

from app.core.size_recommendation import (
    pick_available_size,
    recommend_pants_size,
    recommend_size,
)
from app.models.schemas import Measurements, PantsMeasurements


def suggest(path: str) -> dict:
    with open(path) as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object with body measurements")

    if payload.get("chart") == "pants":
        rec = recommend_pants_size(PantsMeasurements.model_validate(payload))
    else:
        rec = recommend_size(Measurements.model_validate(payload))

    result = rec.model_dump(mode="json", by_alias=True)
    available = payload.get("availableSizes")
    if available:
        result["adaptedSize"] = pick_available_size(rec.size, available)
    return result


def main():
    if len(sys.argv) != 2:
        print(f"Usage: python {sys.argv[0]} <measurements.json>", file=sys.stderr)
        sys.exit(1)

    try:
        result = suggest(sys.argv[1])
        print(json.dumps(result, indent=2))
    except (OSError, ValueError, ValidationError) as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
