"""
Label sheets.

- composer: resolves an ordered item selection into labels and pages them
- paper: physical paper sizes for the print path
- pdf: multi-page vector sheet (reportlab)
- raster: one grid as a PNG (Pillow)
"""
