"""
The LAYOUT layer: scale mapping, force terms, the simulation engine and the
frame scheduler it runs on. Pure Python/NumPy/SciPy, no Qt.
"""
