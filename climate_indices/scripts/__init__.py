"""
Climate Indices Executable Scripts

Scripts:
    run_climate_processing.py: VPD, SPEI, growing seasons and season climate means

Author: Boreal Growth Team
"""
