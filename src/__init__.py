"""Shadow Mask: CRT shadow-mask simulator for low-resolution bitmaps.

This package magnifies a small bitmap into a large image that reproduces how
it would look on a colour CRT: individual RGB phosphor dots or slots, gaussian
electron-beam spots, mask-limited emission and a soft bloom halo.

Architecture layers (strict one-way dependency):
    scripts/ → src/crt_simulator/ → src/utils/

Key invariants:
    - Pixel buffers are (H, W, 4) uint8 RGBA numpy arrays at stage boundaries
    - Channel index 0/1/2 is red/green/blue everywhere
    - Integer zoom factor (output_width // input_width), always ≥ 1
    - YAML-only configs, validated with pydantic
"""

__version__ = "1.0.0"
