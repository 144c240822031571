"""Host-space to plotter-space coordinate mapping.

All coordinate transforms (current affine transform, paper scaling,
Y-axis flip, integer quantization) are applied **here**, not by the
emitter.  The host canvas uses a top-left origin with +Y pointing down;
the plotter uses a bottom-left origin with +Y pointing up.

Two scaling policies are supported, selected by ``paper_scaling``:

    paper_scaling=True   ratio = paper.height_units / canvas_height
                         y' = paper.height_units - ratio * y
    paper_scaling=False  ratio = 1
                         y' = canvas_height - y

Quantization floors both values only after all transform math is
complete.
"""

from __future__ import annotations

import math

from hpgl_plotter.configs.loader import PaperProfile
from hpgl_plotter.geometry.transform import Point2D, TransformStack


class CoordinateMapper:
    """Convert host points and extents into plotter units.

    Parameters
    ----------
    paper : PaperProfile
        Output medium; fixed for the lifetime of the mapper.
    canvas_width, canvas_height : float
        Host canvas size in host units.
    transforms : TransformStack
        Source of the current transform, read on every ``map_point``.
    paper_scaling : bool
        Scale host units onto the paper height (see module docstring).
    quantize : bool
        Floor mapped values to integers.
    """

    def __init__(
        self,
        paper: PaperProfile,
        canvas_width: float,
        canvas_height: float,
        transforms: TransformStack,
        *,
        paper_scaling: bool = True,
        quantize: bool = False,
    ) -> None:
        if canvas_height <= 0:
            raise ValueError(f"canvas_height must be > 0, got {canvas_height}")
        self.paper = paper
        self.canvas_width = float(canvas_width)
        self.canvas_height = float(canvas_height)
        self.transforms = transforms
        self.paper_scaling = paper_scaling
        self.quantize = quantize

    @property
    def ratio(self) -> float:
        """Host-unit to plotter-unit scale factor."""
        if self.paper_scaling:
            return self.paper.height_units / self.canvas_height
        return 1.0

    @property
    def device_height(self) -> float:
        """Height the Y flip is measured from."""
        if self.paper_scaling:
            return float(self.paper.height_units)
        return self.canvas_height

    def map_point(self, point: Point2D) -> Point2D:
        """Apply the current transform, then scale, flip and quantize."""
        return self.to_device(self.transforms.current.apply(point))

    def to_device(self, point: Point2D) -> Point2D:
        """Scale, flip and quantize a point that is already transformed."""
        ratio = self.ratio
        x = ratio * point.x
        y = self.device_height - ratio * point.y
        if self.quantize:
            return Point2D(math.floor(x), math.floor(y))
        return Point2D(x, y)

    def map_extent(self, w: float, h: float) -> tuple[float, float]:
        """Scale a width/height pair; the current transform is not applied."""
        ratio = self.ratio
        sw = ratio * w
        sh = ratio * h
        if self.quantize:
            return math.floor(sw), math.floor(sh)
        return sw, sh
