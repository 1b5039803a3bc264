"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Synthetic ring-width measurements for three site groups
- Synthetic daily station climate and station metadata
- Site attribute and soil chemistry tables
- A populated data root and per-component configuration dictionaries
"""
import numpy as np
import pandas as pd
import pytest

from shared_utils import load_config

RING_YEARS = np.arange(1971, 2011)
CLIMATE_YEARS = (1995, 2010)

# (Type, Site, Plot) of each synthetic site group
SITE_GROUPS = [('CC', 3, 2), ('CC', 4, 1), ('RF', 5, 1)]


# ============================================================
# Ring-Width Fixtures
# ============================================================

@pytest.fixture
def ring_width_table() -> pd.DataFrame:
    """
    Long ring-width table with packed sample codes.

    Every tree shares a common yearly signal on top of a declining age
    trend, so trees within a group correlate strongly. One sample code
    cannot be parsed.
    """
    rng = np.random.default_rng(42)
    t = np.arange(len(RING_YEARS))
    common_signal = rng.uniform(-1, 1, size=len(RING_YEARS))

    rows = []
    for forest_type, site, plot in SITE_GROUPS:
        for tree in range(1, 5):
            noise = rng.uniform(-1, 1, size=len(RING_YEARS))
            widths = (2.0 * np.exp(-0.04 * t) + 0.8) * (1 + 0.25 * common_signal + 0.05 * noise)
            code = f"PS_{forest_type}_S{site:02d}_P{plot}_T{tree}"
            rows.extend({'SampleID': code, 'Year': int(year), 'RingWidth': float(w)}
                        for year, w in zip(RING_YEARS, widths))

    rows.extend({'SampleID': 'unknown sample', 'Year': int(year), 'RingWidth': 1.0} for year in RING_YEARS[:5])
    return pd.DataFrame(rows)


@pytest.fixture
def identical_group() -> pd.DataFrame:
    """Three identical series of dyadic values over 12 years."""
    values = [1.0, 1.5, 0.5, 1.25, 0.75, 2.0, 1.0, 0.5, 1.5, 1.75, 0.25, 1.0]
    years = pd.Index(range(2000, 2012), name='Year')
    return pd.DataFrame({name: values for name in ('T1', 'T2', 'T3')}, index=years)


# ============================================================
# Climate Fixtures
# ============================================================

@pytest.fixture
def daily_climate() -> pd.DataFrame:
    """Daily observations for two stations with a seasonal temperature cycle."""
    rng = np.random.default_rng(7)
    dates = pd.date_range(f"{CLIMATE_YEARS[0]}-01-01", f"{CLIMATE_YEARS[1]}-12-31", freq='D')
    doy = dates.dayofyear.to_numpy()

    frames = []
    for station, offset in (('ST1', 0.0), ('ST2', -1.0)):
        tmean = 3.0 + offset - 15.0 * np.cos(2 * np.pi * (doy - 15) / 365.25) + rng.normal(0, 0.3, len(dates))
        frames.append(pd.DataFrame({
            'Station': station,
            'Date': dates,
            'Tmean': tmean,
            'Tmin': tmean - 4.0 - rng.uniform(0, 1, len(dates)),
            'Tmax': tmean + 4.0 + rng.uniform(0, 1, len(dates)),
            'Precip': rng.gamma(2.0, 1.5, len(dates)),
            'RH': rng.uniform(55, 95, len(dates)),
        }))
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def stations() -> pd.DataFrame:
    return pd.DataFrame({'Station': ['ST1', 'ST2'], 'Latitude': [62.5, 64.0]})


# ============================================================
# Site Fixtures
# ============================================================

@pytest.fixture
def site_attributes() -> pd.DataFrame:
    """Attributes of the first two site groups; the third site is unknown."""
    return pd.DataFrame({
        'forest_type': ['CC', 'CC'],
        'site': ['03', '04'],
        'subplot': [2, 1],
        'Latitude': [62.4, 62.6],
        'Altitude': [180.0, 240.0],
        'Station': ['ST1', 'ST2'],
        'ClearcutYear': [1995, np.nan],
    })


@pytest.fixture
def soil_chemistry() -> pd.DataFrame:
    """Two soil samples for the first site, one for the second."""
    return pd.DataFrame({
        'Type': ['CC', 'CC', 'CC'],
        'Site': [3, 3, 4],
        'Plot': [2, 2, 1],
        'CN_ratio': [30.0, 34.0, 25.0],
    })


# ============================================================
# Data Root and Configuration Fixtures
# ============================================================

@pytest.fixture
def data_root(tmp_path, ring_width_table, daily_climate, stations, site_attributes, soil_chemistry):
    """Data root with every raw input table in its default location."""
    root = tmp_path / "data"
    tables = {
        "raw/ring_widths/ring_widths.csv": ring_width_table,
        "raw/climate/daily_climate.csv": daily_climate,
        "raw/climate/stations.csv": stations,
        "raw/sites/site_attributes.csv": site_attributes,
        "raw/soil/soil_chemistry.csv": soil_chemistry,
    }
    for relative, table in tables.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        table.to_csv(path, index=False)
    return root


@pytest.fixture
def component_config(data_root):
    """Factory returning a component's default configuration pointed at data_root."""
    def _config(component_name: str) -> dict:
        config = load_config(component_name=component_name)
        config['data']['data_root'] = str(data_root)
        config['logging']['level'] = 'WARNING'
        return config
    return _config
