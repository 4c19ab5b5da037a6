"""
Calibration Module.

Responsibilities:
- Sampling the live frame center into a new target color
- Narrowing profile tolerances into the calibration band
"""

from .sampler import CalibrationSampler, apply_calibration
