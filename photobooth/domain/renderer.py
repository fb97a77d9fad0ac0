# photobooth/domain/renderer.py
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from PIL import Image, ImageDraw

from photobooth.config.settings import settings
from photobooth.domain.models import Gradient, Layout
from photobooth.domain.stickers import HandleGeometry, Sticker
from photobooth.infrastructure.imaging import image_process
from photobooth.infrastructure.imaging.colors import contrast_color, parse_color

SELECTION_COLOR = "#0000FF"
HANDLE_FILL = "#FFFFFF"
DELETE_FILL = "#FF0000"
PLACEHOLDER_GLYPH_SIZE = 40
DELETE_GLYPH_SIZE = 12


@dataclass
class CompositeState:
    """Everything one render pass needs. Rebuilt for every pass, never diffed."""
    background_fill: Union[str, Gradient] = settings.DEFAULT_FRAME_COLOR
    background_image: Optional[Image.Image] = None
    photos: Sequence[Optional[Image.Image]] = field(default_factory=list)
    foreground: Optional[Image.Image] = None
    stickers: Sequence[Sticker] = field(default_factory=list)
    selected_sticker_id: Optional[int] = None
    date_text: Optional[str] = None


class CompositeRenderer:
    """Draws the strip layers in a fixed order.

    background -> photos/placeholders -> foreground -> date -> stickers
    (-> selection chrome). Output depends only on the arguments.
    """

    def __init__(
        self,
        handles: Optional[HandleGeometry] = None,
        placeholder_color: str = settings.PLACEHOLDER_COLOR,
        date_font_size: int = settings.DATE_FONT_SIZE,
        date_position: tuple = (settings.DATE_POSITION_X, settings.DATE_POSITION_Y),
        font_path: Optional[str] = settings.FONT_PATH,
    ):
        self.handles = handles or HandleGeometry()
        self.placeholder_color = placeholder_color
        self.date_font_size = date_font_size
        self.date_position = date_position
        self.font_path = font_path

    def redraw(self, layout: Layout, state: CompositeState, scale: float = 1.0) -> Image.Image:
        if scale <= 0:
            raise ValueError("Scale harus lebih besar dari nol.")
        size = layout.canvas_size.scaled(scale)
        surface = Image.new("RGBA", size, (0, 0, 0, 0))

        surface = self._draw_background(surface, state)
        surface = self._draw_photos(surface, layout, state.photos, scale)
        if state.foreground is not None:
            surface = Image.alpha_composite(surface, state.foreground.convert("RGBA").resize(size, Image.Resampling.LANCZOS))
        if state.date_text:
            self._draw_date(surface, state, scale)
        for sticker in state.stickers:
            surface = self._draw_sticker(surface, sticker, scale)
            if sticker.id == state.selected_sticker_id:
                self._draw_selection(surface, sticker, scale)
        return surface

    # ------------------------------------------------------------------
    def _draw_background(self, surface: Image.Image, state: CompositeState) -> Image.Image:
        if state.background_image is not None:
            stretched = state.background_image.convert("RGBA").resize(surface.size, Image.Resampling.LANCZOS)
            return Image.alpha_composite(surface, stretched)
        if isinstance(state.background_fill, Gradient):
            return Image.alpha_composite(surface, image_process.linear_gradient(surface.size, state.background_fill))
        fill = Image.new("RGBA", surface.size, parse_color(state.background_fill))
        return Image.alpha_composite(surface, fill)

    def _draw_photos(self, surface: Image.Image, layout: Layout, photos: Sequence[Optional[Image.Image]], scale: float) -> Image.Image:
        draw = ImageDraw.Draw(surface)
        font = image_process.load_font(PLACEHOLDER_GLYPH_SIZE * scale, self.font_path)
        for index, rect in enumerate(layout.rectangles):
            target = rect.scaled(scale)
            photo = photos[index] if index < len(photos) else None
            if photo is not None:
                if photo.size != (target.width, target.height):
                    photo = photo.resize((target.width, target.height), Image.Resampling.LANCZOS)
                surface.paste(photo.convert("RGBA"), (target.x, target.y))
                continue

            # Open slot: dashed box with a centered "+"
            image_process.draw_dashed_rectangle(
                draw,
                (target.x, target.y, target.x + target.width, target.y + target.height),
                fill=self.placeholder_color,
                width=max(1, round(2 * scale)),
                dash=(5 * scale, 5 * scale),
            )
            draw.text(
                (target.x + target.width / 2, target.y + target.height / 2),
                "+",
                fill=self.placeholder_color,
                font=font,
                anchor="mm",
            )
        return surface

    def _draw_date(self, surface: Image.Image, state: CompositeState, scale: float) -> None:
        draw = ImageDraw.Draw(surface)
        font = image_process.load_font(self.date_font_size * scale, self.font_path)
        x = surface.width * self.date_position[0]
        y = surface.height * self.date_position[1]
        frame_color = state.background_fill if isinstance(state.background_fill, str) else None
        fill = contrast_color(frame_color) if frame_color and state.background_image is None else "#000000"
        draw.text((x, y), state.date_text, fill=fill, font=font, anchor="rs")

    def _draw_sticker(self, surface: Image.Image, sticker: Sticker, scale: float) -> Image.Image:
        w = max(1, round(sticker.width * scale))
        h = max(1, round(sticker.height * scale))
        bitmap = sticker.image.convert("RGBA").resize((w, h), Image.Resampling.LANCZOS)
        if sticker.rotation:
            # PIL rotates counter-clockwise; sticker rotation is clockwise on screen.
            bitmap = bitmap.rotate(-sticker.rotation, resample=Image.Resampling.BICUBIC, expand=True)
        cx, cy = sticker.x * scale, sticker.y * scale
        position = (round(cx - bitmap.width / 2), round(cy - bitmap.height / 2))
        return image_process.composite_layer(surface, bitmap, position)

    def _draw_selection(self, surface: Image.Image, sticker: Sticker, scale: float) -> None:
        draw = ImageDraw.Draw(surface)
        line = max(1, round(2 * scale))

        def canvas(point):
            x, y = sticker.to_canvas(*point)
            return (x * scale, y * scale)

        outline = [canvas(p) for p in self.handles.corners(sticker)]
        draw.line(outline + [outline[0]], fill=SELECTION_COLOR, width=line, joint="curve")

        half = self.handles.handle_size / 2
        squares = self.handles.corners(sticker) + [self.handles.rotate_handle(sticker)]
        for hx, hy in squares:
            square = [canvas((hx + dx, hy + dy)) for dx, dy in ((-half, -half), (half, -half), (half, half), (-half, half))]
            draw.polygon(square, fill=HANDLE_FILL, outline=SELECTION_COLOR)

        cx, cy = canvas(self.handles.delete_handle(sticker))
        r = self.handles.delete_radius * scale
        draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=DELETE_FILL)
        font = image_process.load_font(DELETE_GLYPH_SIZE * scale, self.font_path)
        draw.text((cx, cy), "X", fill=HANDLE_FILL, font=font, anchor="mm")
