"""End-to-end shadow-mask rendering pipeline.

Stages (linear; every failure aborts the run):

    LOAD → [ROTATE_RIGHT if portrait] → COMPUTE_GEOMETRY → RENDER_CHANNEL(0..2)
         → COMPOSE → BLOOM → [ROTATE_LEFT if portrait] → SAVE

Public API:
    load_config(path)                       → ShadowMaskV1
    render_crt(image, output_width, ...)    → (H, W, 4) uint8
    run_pipeline(input_path, output_path, output_width, ...) → dict

The three channel renders share nothing but the read-only input image, so they
run on a thread pool with a join before compositing. Each worker owns its own
SpotCache.

Saving is atomic (temp file, then rename). If the save fails after rendering
succeeded, no new file appears and any previous file at the output path is
left as it was, i.e. possibly stale.

Usage:
    from src.crt_simulator.pipeline import run_pipeline

    result = run_pipeline("title.png", "title_crt.png", 2560, mask_type="INLINE")
    print(result['output_sha256'])
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml
from pydantic import ValidationError

from src.utils import fs, hashing, image_ops, validators
from src.utils.profiler import StageTimings
from src.utils.validators import ShadowMaskV1

from .channel import ChannelRenderer
from .compositor import apply_bloom, compose
from .errors import ConfigurationError
from .geometry import CRTGeometry, compute_geometry
from .masks import MaskType
from .spots import NUM_CHANNELS

logger = logging.getLogger(__name__)


def load_config(path: Optional[Union[str, Path]] = None) -> ShadowMaskV1:
    """Load renderer config, or defaults when ``path`` is None.

    Raises
    ------
    ConfigurationError
        Missing file, malformed YAML, or schema violation
    """
    if path is None:
        return validators.default_shadow_mask_config()
    try:
        cfg = validators.load_shadow_mask_config(path)
    except (FileNotFoundError, yaml.YAMLError, ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid config {path}: {e}") from e
    logger.debug(f"Loaded config {path}: {validators.flatten_config(cfg)}")
    return cfg


def render_channels(
    image: np.ndarray,
    geometry: CRTGeometry,
    mask_type: MaskType,
    cfg: ShadowMaskV1
) -> List[np.ndarray]:
    """Render channels 0, 1, 2 (in parallel when configured).

    Returns
    -------
    list of np.ndarray
        Three (H, W, 4) uint8 channel images, in channel order
    """
    renderer = ChannelRenderer(geometry, mask_type, cfg)

    if not cfg.render.parallel_channels or cfg.render.max_workers == 1:
        return [renderer.render_channel(image, c) for c in range(NUM_CHANNELS)]

    with ThreadPoolExecutor(
        max_workers=cfg.render.max_workers,
        thread_name_prefix="channel"
    ) as pool:
        # Copy the context per task so worker log lines keep push_context() fields
        futures = [
            pool.submit(contextvars.copy_context().run, renderer.render_channel, image, c)
            for c in range(NUM_CHANNELS)
        ]
        return [f.result() for f in futures]


def render_crt(
    image: np.ndarray,
    output_width: int,
    mask_type: Optional[Union[str, MaskType]] = None,
    portrait: bool = False,
    cfg: Optional[ShadowMaskV1] = None,
    timings: Optional[StageTimings] = None
) -> np.ndarray:
    """Render a bitmap as seen through a CRT shadow mask.

    Parameters
    ----------
    image : np.ndarray
        (H, W, 3|4) uint8 source bitmap
    output_width : int
        Output width in pixels (of the landscape-oriented tube when
        ``portrait`` is set)
    mask_type : MaskType or str, optional
        DELTA or INLINE; defaults to ``cfg.mask.type``
    portrait : bool
        CRT is mounted portrait: rotate right before and left after rendering
    cfg : ShadowMaskV1, optional
        Renderer config; defaults when omitted
    timings : StageTimings, optional
        Collects per-stage wall-clock times

    Returns
    -------
    np.ndarray
        (H', W', 4) uint8 opaque image

    Raises
    ------
    ConfigurationError
        Unknown mask type (raised before any rendering)
    GeometryError
        Output too narrow or zoom too small to sample the beam
    """
    cfg = cfg or validators.default_shadow_mask_config()
    timings = timings or StageTimings(logger)
    mask_type = MaskType.parse(mask_type if mask_type is not None else cfg.mask.type)

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H, W, 3|4) image, got shape {image.shape}")

    if portrait:
        image = image_ops.rotate_right(image)

    input_height, input_width = image.shape[:2]
    geometry = compute_geometry(input_width, input_height, output_width, cfg)
    logger.info(
        f"Rendering {input_width}x{input_height} → {geometry.output_width}x"
        f"{geometry.output_height} ({mask_type.value}, zoom={geometry.zoom_factor}, "
        f"beam={geometry.beam_diameter}px)"
    )

    with timings.stage("render_channels"):
        channels = render_channels(image, geometry, mask_type, cfg)

    with timings.stage("compose"):
        output = compose(*channels)

    if cfg.bloom.enabled:
        with timings.stage("bloom"):
            output = apply_bloom(output, geometry.zoom_factor, cfg.bloom)

    if portrait:
        output = image_ops.rotate_left(output)

    return output


def run_pipeline(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    output_width: int,
    mask_type: Optional[Union[str, MaskType]] = None,
    portrait: bool = False,
    cfg: Optional[ShadowMaskV1] = None
) -> Dict[str, Any]:
    """Load, render and save.

    Returns
    -------
    dict
        - output_path: str
        - width, height: int (saved image size)
        - mask_type: str
        - output_sha256: str (digest of the saved pixels)
        - config_sha256: str
        - timings: dict[str, float] (seconds per stage)

    Raises
    ------
    ImageIOError
        Input cannot be loaded or output cannot be saved
    ConfigurationError, GeometryError
        See render_crt()
    """
    cfg = cfg or validators.default_shadow_mask_config()
    # Fail on a bad mask tag before touching the filesystem
    mask_type = MaskType.parse(mask_type if mask_type is not None else cfg.mask.type)
    timings = StageTimings(logger)

    with timings.stage("load"):
        image = fs.load_image(input_path)
    logger.info(f"Loaded {input_path} ({image.shape[1]}x{image.shape[0]})")

    output = render_crt(image, output_width, mask_type, portrait, cfg, timings)

    with timings.stage("save"):
        fs.atomic_save_image(output, output_path)

    digest = hashing.sha256_array(output)
    config_digest = hashing.hash_dict(cfg.model_dump())
    logger.info(
        f"Saved {output_path} ({output.shape[1]}x{output.shape[0]}) in "
        f"{timings.total:.2f} s, sha256={digest[:12]}, config={config_digest[:12]}"
    )

    return {
        'output_path': str(output_path),
        'width': int(output.shape[1]),
        'height': int(output.shape[0]),
        'mask_type': mask_type.value,
        'output_sha256': digest,
        'config_sha256': config_digest,
        'timings': timings.as_dict(),
    }
