"""Per-channel beam rendering: stretch, stamp, clip.

For one colour channel, every source row is swept by the electron beam:

    1. Nearest-neighbour stretch of the row to the output width
    2. Gaussian blur of the stretched row (finite beam transition time)
    3. A beam hit every ``beam_step`` pixels: the channel value at the hit
       selects a gaussian spot, alpha-composited onto an opaque black
       accumulator centred on the row's scanline
    4. The accumulated image is clipped to the channel's shadow-mask holes

Invariants:
    - Accumulation in float32 [0, 1]; uint8 conversion only at the end
    - Spots are clipped at the canvas borders (ROI slicing)
    - Input image is never modified
"""

import logging
from typing import Optional, Union

import numpy as np

from src.utils import image_ops
from src.utils.validators import ShadowMaskV1, default_shadow_mask_config

from .errors import GeometryError
from .geometry import CRTGeometry
from .masks import MaskType, dump_mask, make_mask
from .spots import NUM_CHANNELS, SpotCache

logger = logging.getLogger(__name__)


class ChannelRenderer:
    """Renders one colour channel of the CRT image.

    Attributes
    ----------
    geometry : CRTGeometry
        Zoom, beam and output sizes for this run
    mask_type : MaskType
        DELTA or INLINE
    cfg : ShadowMaskV1
        Renderer configuration
    """

    def __init__(
        self,
        geometry: CRTGeometry,
        mask_type: Union[str, MaskType] = MaskType.DELTA,
        cfg: Optional[ShadowMaskV1] = None
    ):
        if geometry.beam_step < 1:
            raise GeometryError(f"Beam step must be ≥ 1, got {geometry.beam_step}")
        self.geometry = geometry
        self.mask_type = MaskType.parse(mask_type)
        self.cfg = cfg or default_shadow_mask_config()

    def stretch_row(self, input_image: np.ndarray, sy: int) -> np.ndarray:
        """Stretch source row ``sy`` to the output width and blur it.

        Parameters
        ----------
        input_image : np.ndarray
            (H, W, 3|4) uint8 source bitmap
        sy : int
            Source row index

        Returns
        -------
        np.ndarray
            (output_width, 3) uint8 blurred row
        """
        g = self.geometry
        input_width = input_image.shape[1]
        src_x = np.minimum(np.arange(g.output_width) // g.zoom_factor, input_width - 1)
        stretched = input_image[sy, src_x, :3][np.newaxis, :, :]

        blurred = image_ops.gaussian_blur(
            np.ascontiguousarray(stretched),
            g.zoom_factor * self.cfg.beam.row_blur_frac,
        )
        return blurred[0]

    @staticmethod
    def _splat_spot(plane: np.ndarray, spot_alpha: np.ndarray, x0: int, y0: int) -> None:
        """Alpha-over a full-intensity spot onto ``plane`` at top-left (x0, y0)."""
        H, W = plane.shape
        size = spot_alpha.shape[0]

        x_min, y_min = max(0, x0), max(0, y0)
        x_max, y_max = min(W, x0 + size), min(H, y0 + size)
        if x_max <= x_min or y_max <= y_min:
            return

        a = spot_alpha[y_min - y0:y_max - y0, x_min - x0:x_max - x0]
        roi = plane[y_min:y_max, x_min:x_max]
        # src-over with a source colour of 1.0
        plane[y_min:y_max, x_min:x_max] = roi + a * (1.0 - roi)

    def render_channel(self, input_image: np.ndarray, channel_index: int) -> np.ndarray:
        """Render one channel, clipped to its mask.

        Parameters
        ----------
        input_image : np.ndarray
            (H, W, 3|4) uint8 source bitmap
        channel_index : int
            0 = red, 1 = green, 2 = blue

        Returns
        -------
        np.ndarray
            (output_height, output_width, 4) uint8. Inside mask holes the pixel
            is opaque with only ``channel_index`` set; elsewhere transparent.
        """
        if channel_index not in range(NUM_CHANNELS):
            raise ValueError(f"channel_index must be 0, 1 or 2, got {channel_index}")

        g = self.geometry
        input_height, input_width = input_image.shape[:2]
        if (input_width, input_height) != (g.input_width, g.input_height):
            raise ValueError(
                f"Input image {input_width}x{input_height} does not match geometry "
                f"{g.input_width}x{g.input_height}"
            )

        cache = SpotCache(g.spot_size, self.cfg.beam.falloff)
        spot_alphas = {}

        plane = np.zeros((g.output_height, g.output_width), dtype=np.float32)
        half_spot = g.spot_size // 2
        sample_x = np.arange(0, g.output_width, g.beam_step)

        for sy in range(input_height):
            row = self.stretch_row(input_image, sy)
            center_y = sy * g.zoom_factor + g.zoom_factor // 2
            values = row[sample_x, channel_index]

            for dx, value in zip(sample_x, values):
                if value == 0:
                    continue
                alpha = spot_alphas.get(value)
                if alpha is None:
                    spot = cache.get_spot(channel_index, int(value), g.spot_size)
                    alpha = spot[..., 3].astype(np.float32) / 255.0
                    spot_alphas[value] = alpha
                self._splat_spot(plane, alpha, int(dx) - half_spot, center_y - half_spot)

        logger.debug(
            f"Channel {channel_index}: {len(cache)} spots cached over "
            f"{input_height} rows x {len(sample_x)} beam hits"
        )

        colored = np.zeros((g.output_height, g.output_width, 4), dtype=np.uint8)
        colored[..., channel_index] = np.clip(np.rint(plane * 255.0), 0, 255).astype(np.uint8)
        colored[..., 3] = 255

        mask = make_mask(
            self.mask_type, g.output_width, g.output_height,
            g.zoom_factor, channel_index, self.cfg.mask
        )
        if self.cfg.debug.dump_masks_dir:
            dump_mask(mask, self.cfg.debug.dump_masks_dir, channel_index)

        return image_ops.clip_to_mask(colored, mask)


def render_channel(
    input_image: np.ndarray,
    channel_index: int,
    beam_diameter: int,
    zoom_factor: int,
    output_width: int,
    output_height: int,
    mask_type: Union[str, MaskType] = MaskType.DELTA,
    cfg: Optional[ShadowMaskV1] = None
) -> np.ndarray:
    """Render one channel from explicit geometry parameters.

    Functional form of ChannelRenderer.render_channel() for callers that
    already hold the beam diameter and zoom factor.

    Raises
    ------
    GeometryError
        If ``beam_diameter // sample_divisor`` is 0
    """
    cfg = cfg or default_shadow_mask_config()
    beam_step = beam_diameter // cfg.beam.sample_divisor
    if beam_step < 1:
        raise GeometryError(
            f"Beam diameter {beam_diameter} too small to sample "
            f"(needs ≥ {cfg.beam.sample_divisor})"
        )

    input_height, input_width = input_image.shape[:2]
    geometry = CRTGeometry(
        input_width=input_width,
        input_height=input_height,
        output_width=output_width,
        output_height=output_height,
        zoom_factor=zoom_factor,
        beam_diameter=beam_diameter,
        spot_size=beam_diameter * cfg.beam.spot_scale,
        beam_step=beam_step,
    )
    return ChannelRenderer(geometry, mask_type, cfg).render_channel(input_image, channel_index)
