# src/wsg_check/core/services/carbon_estimator_service.py
"""
Per-page-view CO2 estimate using the Sustainable Web Design model (v4, per byte).

Energy intensities are in kWh per GB transferred; grid intensities in
grams CO2e per kWh.
"""
from typing import Dict

CO2_MODEL = "swd-v4"

BYTES_PER_GB = 1_000_000_000

OPERATIONAL_KWH_PER_GB: Dict[str, float] = {
    "data_centre": 0.055,
    "network": 0.059,
    "user_device": 0.080,
}

EMBODIED_KWH_PER_GB: Dict[str, float] = {
    "data_centre": 0.012,
    "network": 0.013,
    "user_device": 0.081,
}

GLOBAL_GRID_INTENSITY = 494
RENEWABLES_GRID_INTENSITY = 50


def estimate_segments(num_bytes: int, is_green_hosted: bool = False) -> Dict[str, float]:
    """Grams CO2e per segment, unrounded. Green hosting only affects data-centre operations."""
    gigabytes = max(num_bytes, 0) / BYTES_PER_GB
    segments: Dict[str, float] = {}
    for segment, kwh in OPERATIONAL_KWH_PER_GB.items():
        intensity = GLOBAL_GRID_INTENSITY
        if segment == "data_centre" and is_green_hosted:
            intensity = RENEWABLES_GRID_INTENSITY
        segments[f"{segment}_operational"] = gigabytes * kwh * intensity
    for segment, kwh in EMBODIED_KWH_PER_GB.items():
        segments[f"{segment}_embodied"] = gigabytes * kwh * GLOBAL_GRID_INTENSITY
    return segments


def estimate_co2(num_bytes: int, is_green_hosted: bool = False) -> float:
    """Total grams CO2e for transferring `num_bytes`, rounded to 4 decimals."""
    return round(sum(estimate_segments(num_bytes, is_green_hosted).values()), 4)
