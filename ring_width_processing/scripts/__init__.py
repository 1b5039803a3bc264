"""
Ring-Width Processing Executable Scripts

Command-line entry points for ring-width processing.

Scripts:
    run_ring_processing.py: Identifier normalization, detrending, quality filtering
        and biomass reconstruction

Author: Boreal Growth Team
"""
