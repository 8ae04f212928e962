"""
Wayfinder - shortest-path search over road networks and terrain grids.

This package builds directed search graphs from road geometry or editable
terrain grids and runs classic search strategies over them for side-by-side
comparison.
"""

__version__ = "0.1.0"
