# Nurimisaki Grid Style Definitions

# Cell States
COLOR_CAPE = (255, 255, 255)
COLOR_BLACK = (20, 20, 20)
COLOR_WHITE = (235, 235, 235)   # White (not a cape)
COLOR_UNKNOWN = (180, 180, 180)

# Lines and Outlines
COLOR_GRID_LINES = (70, 70, 70)
COLOR_CAPE_RING = (40, 40, 40)
COLOR_CONTRADICTION_HIGHLIGHT = (220, 40, 40)  # Red outline for cells of a failed check

# Text
COLOR_TEXT_CLUE = (0, 0, 0)

# Image export
COLOR_BG = (30, 30, 30)
COLOR_TITLE = (220, 220, 220)
BASE_CELL_SIZE = 32
PADDING = 20
TITLE_HEIGHT = 40
