import logging

import matplotlib.pyplot as plt
from matplotlib.patches import RegularPolygon
import numpy as np
import matplotlib.patches as mpatches

log = logging.getLogger(__name__)

# Define colors for players and empty cells
COLOR_MAP = {
    1: '#d62728',   # X, player 0 (Red)
    0: '#ffffff',   # Empty cell
    -1: '#1f77b4',  # O, player 1 (Blue)
}


def _cell_value(board_state, board_size, row, col):
    # Accept both a flat ternary vector and a mapping keyed by 'cell{row}_{col}'
    if isinstance(board_state, (np.ndarray, list, tuple)):
        return int(board_state[row * board_size + col])
    return int(board_state[f'cell{row}_{col}'])


def visualize_hex_board(board_state, board_size=7, output_file='hex_board.png'):
    """
    Draws a Hex board state as a rhombus and saves it to `output_file`.

    Row 0 is at the top and every row is shifted half a cell to the right of
    the one above, so the six neighbours of a cell match the engine's. X
    owns the top and bottom sides, O the left and right sides.

    Parameters:
    - board_state: Flat ternary vector (row-major) or a mapping keyed by 'cell{row}_{col}'.
    - board_size: Size of the Hex board.
    - output_file: Path of the image to write.

    Returns:
    - str: The path the image was saved to.
    """
    fig, ax = plt.subplots(figsize=(10, 10))
    ax.set_aspect('equal')

    # Hexagon parameters
    hex_size = 1
    hex_width = hex_size * np.sqrt(3)

    all_x_coords = []
    all_y_coords = []

    for row in range(board_size):
        for col in range(board_size):
            x = hex_width * (col + row / 2)
            y = -hex_size * 3 / 2 * row

            all_x_coords.append(x)
            all_y_coords.append(y)

            hexagon = RegularPolygon(
                (x, y),
                numVertices=6,
                radius=hex_size * 0.95,  # Slight reduction to avoid overlaps
                orientation=0,           # Pointy-top hexagons
                facecolor=COLOR_MAP[_cell_value(board_state, board_size, row, col)],
                edgecolor='gray'
            )
            ax.add_patch(hexagon)

    x_min = min(all_x_coords) - hex_width
    x_max = max(all_x_coords) + hex_width
    # Horizontal offset of the bottom row against the top row
    shift = hex_width * (board_size - 1) / 2
    y_min = min(all_y_coords) - hex_size * 1.5
    y_max = max(all_y_coords) + hex_size * 1.5

    ax.set_ylim(y_min - hex_size, y_max + hex_size)
    ax.axis('off')
    ax.set_title(f'Hex Game Board ({board_size}x{board_size})', fontsize=20)

    legend_patches = [
        mpatches.Patch(color=COLOR_MAP[1], label='X (Red)'),
        mpatches.Patch(color=COLOR_MAP[-1], label='O (Blue)'),
        mpatches.Patch(facecolor=COLOR_MAP[0], edgecolor='gray', label='Empty Cell')
    ]
    ax.legend(handles=legend_patches, loc='upper left', bbox_to_anchor=(1.05, 1), fontsize=14)

    # Side bars follow the slant of the rhombus
    top_left = (x_min, y_max)
    top_right = (x_max - shift, y_max)
    bottom_left = (x_min + shift, y_min)
    bottom_right = (x_max, y_min)

    sides = [
        (top_left, top_right, COLOR_MAP[1]),
        (bottom_left, bottom_right, COLOR_MAP[1]),
        (top_left, bottom_left, COLOR_MAP[-1]),
        (top_right, bottom_right, COLOR_MAP[-1]),
    ]
    for start, end, color in sides:
        ax.add_line(plt.Line2D((start[0], end[0]), (start[1], end[1]), color=color, linewidth=5))

    ax.set_xlim(x_min - hex_width, x_max + hex_width)

    plt.tight_layout()
    plt.savefig(output_file, dpi=150, bbox_inches='tight')
    plt.close(fig)  # Close the figure to free up memory

    log.info(f"Board visualization saved as {output_file}")
    return output_file
