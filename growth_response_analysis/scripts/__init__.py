"""
Growth Response Analysis Executable Scripts

Scripts:
    run_growth_response.py: Ecological metrics and MasterTable export

Author: Boreal Growth Team
"""
