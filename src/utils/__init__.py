"""Shared helpers for the renderer (bottom layer: imports nothing from crt_simulator).

    fs              image load / atomic save, YAML
    image_ops       blur, screen blend, mask clip, 90° rotations
    validators      pydantic config schema (shadow_mask.v1)
    hashing         SHA-256 digests of pixel buffers and configs
    profiler        stage timers
    logging_config  root logger setup and contextual fields
"""

from . import fs, hashing, image_ops, logging_config, profiler, validators
from .logging_config import pop_context, push_context, setup_logging

__all__ = [
    'fs',
    'hashing',
    'image_ops',
    'logging_config',
    'profiler',
    'validators',
    'setup_logging',
    'push_context',
    'pop_context',
]
