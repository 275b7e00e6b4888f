import os
import pygame
from dataclasses import dataclass
from typing import Tuple, Optional, List
from nurimisaki_model import NurimisakiBoard, cape_glyph
import grid_style


@dataclass
class Camera:
    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0

    def world_to_screen(self, wx: float, wy: float) -> Tuple[float, float]:
        return wx * self.zoom + self.offset_x, wy * self.zoom + self.offset_y


def cell_rect(camera: Camera, base_cell_size: int, r: int, c: int) -> pygame.Rect:
    cell_size = base_cell_size * camera.zoom
    sx, sy = camera.world_to_screen(c * base_cell_size, r * base_cell_size)
    return pygame.Rect(int(sx), int(sy), int(cell_size), int(cell_size))


def draw_grid(
    screen: pygame.Surface,
    board: NurimisakiBoard,
    camera: Camera,
    base_cell_size: int,
    font: pygame.font.Font,
    highlight_cells: Optional[List[Tuple[int, int]]] = None
) -> None:
    """Draw every cell of the board; capes as a ring with their number."""
    cell_size = base_cell_size * camera.zoom
    if cell_size < 2:
        return

    for r in range(board.rows):
        for c in range(board.cols):
            rect = cell_rect(camera, base_cell_size, r, c)

            if board.is_cape(r, c):
                pygame.draw.rect(screen, grid_style.COLOR_CAPE, rect)
            elif board.is_black(r, c):
                pygame.draw.rect(screen, grid_style.COLOR_BLACK, rect)
            elif board.is_white(r, c):
                pygame.draw.rect(screen, grid_style.COLOR_WHITE, rect)
            else:
                pygame.draw.rect(screen, grid_style.COLOR_UNKNOWN, rect)

            pygame.draw.rect(screen, grid_style.COLOR_GRID_LINES, rect, 1)

            if highlight_cells and (r, c) in highlight_cells:
                pygame.draw.rect(screen, grid_style.COLOR_CONTRADICTION_HIGHLIGHT, rect, 3)

            if board.is_cape(r, c):
                radius = max(2, int(cell_size * 0.4))
                pygame.draw.circle(screen, grid_style.COLOR_CAPE_RING, rect.center, radius, 2)
                clue = board.cape_clue(r, c)
                if clue >= 2:
                    surf = font.render(cape_glyph(clue), True, grid_style.COLOR_TEXT_CLUE)
                    screen.blit(
                        surf,
                        (rect.x + (rect.width - surf.get_width()) // 2, rect.y + (rect.height - surf.get_height()) // 2)
                    )


def render_board_surface(board: NurimisakiBoard, title: str = "",
                         highlight_cells: Optional[List[Tuple[int, int]]] = None) -> pygame.Surface:
    """Render a board to an off-screen surface with a title bar."""
    if not pygame.font.get_init():
        pygame.font.init()
    font = pygame.font.Font(None, 24)

    base = grid_style.BASE_CELL_SIZE
    pad = grid_style.PADDING
    img_width = board.cols * base + 2 * pad
    img_height = board.rows * base + pad + grid_style.TITLE_HEIGHT

    surface = pygame.Surface((img_width, img_height))
    surface.fill(grid_style.COLOR_BG)
    camera = Camera(offset_x=pad, offset_y=grid_style.TITLE_HEIGHT, zoom=1.0)
    draw_grid(surface, board, camera, base, font, highlight_cells=highlight_cells)
    if title:
        surface.blit(font.render(title, True, grid_style.COLOR_TITLE), (pad, 10))
    return surface


def save_board_image(board: NurimisakiBoard, path: str, title: str = "",
                     highlight_cells: Optional[List[Tuple[int, int]]] = None) -> str:
    """Render the board and save it as an image (format from the file extension)."""
    surface = render_board_surface(board, title=title, highlight_cells=highlight_cells)
    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)
    pygame.image.save(surface, path)
    return path
