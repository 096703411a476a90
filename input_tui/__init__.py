"""
Input TUI - One-Shot Input Prompts

Collects a single piece of structured input from a person:
- Text: single or multi-line, optionally validated as JSON
- Image: a freehand drawing
- Pixel art: a grid editor with draw, erase and fill tools

Each prompt runs in its own Textual subprocess and answers with exactly
one JSON reply. Exported images are kept in a small on-disk cache.
"""

__version__ = "1.0.0"
