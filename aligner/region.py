from __future__ import annotations
"""
Translation solving from user-selected regions.

Both helpers reason in image pixel space and always return scale = 1.0;
rotation is carried over untouched and solved separately.
"""

from common.geometry import image_center, region_center
from common.types import SelectedRegion, Transform


def center_region(
    width: float,
    height: float,
    current: Transform,
    region: SelectedRegion,
) -> Transform:
    """
    Translation that brings the region's centre onto the image's own centre.

    After placement: region_center + translate == (width/2, height/2).
    """
    rcx, rcy = region_center(region)
    icx, icy = image_center(width, height)
    rel_x, rel_y = rcx - icx, rcy - icy
    return Transform(scale=1.0, rotation=current.rotation, translate_x=-rel_x, translate_y=-rel_y)


def align_to_reference(
    ref_width: float,
    ref_height: float,
    ref_transform: Transform,
    ref_region: SelectedRegion,
    cur_width: float,
    cur_height: float,
    cur_transform: Transform,
    cur_region: SelectedRegion,
) -> Transform:
    """
    Translation placing cur_region's centre on top of ref_region's already-placed centre.
    """
    ref_cx, ref_cy = region_center(ref_region)
    ref_icx, ref_icy = image_center(ref_width, ref_height)
    placed_x = ref_transform.translate_x + (ref_cx - ref_icx)
    placed_y = ref_transform.translate_y + (ref_cy - ref_icy)

    cur_cx, cur_cy = region_center(cur_region)
    cur_icx, cur_icy = image_center(cur_width, cur_height)
    bare_x = cur_cx - cur_icx
    bare_y = cur_cy - cur_icy

    return Transform(
        scale=1.0,
        rotation=cur_transform.rotation,
        translate_x=placed_x - bare_x,
        translate_y=placed_y - bare_y,
    )


def recenter_x(width: float, current: Transform, target_center_x: float) -> Transform:
    """Move only horizontally so the image centre sits at target_center_x."""
    return Transform(
        scale=current.scale,
        rotation=current.rotation,
        translate_x=target_center_x - width / 2.0,
        translate_y=current.translate_y,
    )
