"""
Diameter and biomass reconstruction from annual ring increments.

Ring widths are radial increments, so diameter accumulates at twice the
ring width. Walking the trimmed series from the most recent ring back to the
oldest, the reconstructed diameter at ring position j (1 = oldest ring) is

    D_j = 2 * sum(all widths) - 2 * sum(widths before j)

Diameters are converted to biomass with species-specific allometries made of
five component models of the Marklund form exp(a + b * D / (D + k)), and annual
biomass increments are obtained by differencing consecutive positions.

Author: Boreal Growth Team
"""

from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from shared_utils import get_logger, ExclusionLog

ALLOMETRY_COMPONENTS = ('stem_wood', 'stem_bark', 'living_branches', 'dead_branches', 'foliage')

# Component dry biomass (kg) = exp(a + b * D / (D + k)), D = diameter at breast
# height in cm. One (a, b, k) triple per entry of ALLOMETRY_COMPONENTS.
# Diameter-only functions from Marklund, L.G. (1988) Biomassafunktioner för
# tall, gran och björk i Sverige. SLU, Inst. för skogstaxering, Rapport 45.
DEFAULT_ALLOMETRY_COEFFICIENTS = {
    # Pinus sylvestris
    'PS': (
        (-2.2184, 11.4219, 14),
        (-2.9748, 8.8489, 16),
        (-2.8604, 9.1015, 10),
        (-5.8926, 7.1270, 10),
        (-3.7983, 7.7681, 7),
    ),
    # Picea abies
    'PA': (
        (-2.2471, 11.4873, 14),
        (-3.3912, 9.8364, 15),
        (-3.3645, 10.9708, 13),
        (-4.6351, 3.6518, 18),
        (-1.9602, 7.8171, 12),
    ),
    # Betula pendula / pubescens
    'BP': (
        (-3.3045, 10.8109, 11),
        (-3.2765, 8.3019, 14),
        (-3.3633, 10.2806, 10),
        (-6.6237, 11.2872, 30),
        (-3.9823, 7.6066, 8),
    ),
}


class AllometryTable:
    """
    Species lookup of allometric coefficients.

    Species are added or altered through the coefficient mapping only; the
    transform code never holds species-specific literals.
    """

    def __init__(self, coefficients: Optional[Dict[str, Sequence[Sequence[float]]]] = None):
        table = dict(DEFAULT_ALLOMETRY_COEFFICIENTS)
        if coefficients:
            table.update({str(species).upper(): triples for species, triples in coefficients.items()})

        self.coefficients = {}
        for species, triples in table.items():
            triples = np.asarray(triples, dtype=float)
            if triples.shape != (len(ALLOMETRY_COMPONENTS), 3):
                raise ValueError(
                    f"Allometry for {species} needs {len(ALLOMETRY_COMPONENTS)} (a, b, k) triples, "
                    f"got shape {triples.shape}"
                )
            if np.any(triples[:, 2] <= 0):
                raise ValueError(f"Allometry for {species} needs positive k terms")
            self.coefficients[species] = triples

    def __contains__(self, species: str) -> bool:
        return str(species).upper() in self.coefficients

    @property
    def species(self) -> Tuple[str, ...]:
        return tuple(sorted(self.coefficients))

    def component_biomass(self, species: str, diameter_cm) -> pd.DataFrame:
        """Biomass of each component for the given diameters."""
        triples = self.coefficients[str(species).upper()]
        diameter_cm = np.asarray(diameter_cm, dtype=float)
        diameter_cm = np.where(diameter_cm > 0, diameter_cm, np.nan)
        return pd.DataFrame({
            component: np.exp(a + b * diameter_cm / (diameter_cm + k))
            for component, (a, b, k) in zip(ALLOMETRY_COMPONENTS, triples)
        })

    def biomass(self, species: str, diameter_cm) -> np.ndarray:
        """Total biomass (kg): sum of the five component models."""
        return self.component_biomass(species, diameter_cm).sum(axis=1, min_count=len(ALLOMETRY_COMPONENTS)).to_numpy()


def valid_range(values: np.ndarray) -> Optional[Tuple[int, int]]:
    """Index bounds (inclusive) of the first and last non-missing value."""
    present = np.flatnonzero(~np.isnan(values))
    if present.size == 0:
        return None
    return int(present[0]), int(present[-1])


def reconstruct_diameter(widths: np.ndarray) -> np.ndarray:
    """
    Reconstruct cumulative diameter per ring position.

    Args:
        widths: Ring widths in chronological order (oldest first)

    Returns:
        np.ndarray: Diameter per position, 2 * sum of the widths from that
        ring to the most recent one. Positions outside the valid range are
        missing, and a missing ring leaves every older position missing.
    """
    widths = np.asarray(widths, dtype=float)
    diameter = np.full(widths.shape, np.nan)
    bounds = valid_range(widths)
    if bounds is None:
        return diameter

    first, last = bounds
    trimmed = widths[first:last + 1]
    diameter[first:last + 1] = 2.0 * np.cumsum(trimmed[::-1])[::-1]
    return diameter


def biomass_increments(biomass: np.ndarray) -> np.ndarray:
    """
    Difference consecutive cumulative biomass values.

    increment_j = B_j - B_{j+1}; the last position of the valid range has no
    successor and keeps its own cumulative value.
    """
    biomass = np.asarray(biomass, dtype=float)
    increments = np.full(biomass.shape, np.nan)
    bounds = valid_range(biomass)
    if bounds is None:
        return increments

    first, last = bounds
    for j in range(first, last + 1):
        if j < last:
            increments[j] = biomass[j] - biomass[j + 1]
        else:
            increments[j] = biomass[j]
    return increments


def reconstruct_biomass_table(
    wide_widths: pd.DataFrame,
    tree_species: pd.Series,
    allometry: Optional[AllometryTable] = None,
    width_to_cm: float = 0.1,
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Reconstruct diameter, biomass and biomass increments for every tree.

    Args:
        wide_widths: Year x tree ring-width table, years strictly ascending
        tree_species: Mapping TreeID -> species code
        allometry: Allometry lookup table (defaults to built-in coefficients)
        width_to_cm: Factor converting ring-width units to cm (0.1 for mm)
        exclusions: Exclusion log receiving trees without an allometry

    Returns:
        pd.DataFrame: Long table with TreeID, Year, ring_position, ring_width,
        diameter_cm, biomass_kg, biomass_increment_kg
    """
    logger = get_logger('ring_width_processing.biomass_reconstruction')

    years = wide_widths.index
    if not (years.is_monotonic_increasing and years.is_unique):
        raise ValueError("Biomass reconstruction requires strictly ascending, unique years")

    allometry = allometry or AllometryTable()
    grid = wide_widths.to_numpy(dtype=float)
    n_years, n_trees = grid.shape

    diameter = np.full(grid.shape, np.nan)
    biomass = np.full(grid.shape, np.nan)
    increments = np.full(grid.shape, np.nan)
    positions = np.full(grid.shape, np.nan)

    for t, tree_id in enumerate(wide_widths.columns):
        bounds = valid_range(grid[:, t])
        if bounds is None:
            continue
        first, last = bounds
        positions[first:last + 1, t] = np.arange(1, last - first + 2)
        diameter[:, t] = reconstruct_diameter(grid[:, t]) * width_to_cm

        species = tree_species.get(tree_id)
        if species is None or species not in allometry:
            logger.warning(f"No allometry for species {species!r} of tree {tree_id}")
            if exclusions is not None:
                exclusions.add('biomass_reconstruction', tree_id, f'no allometry for species {species}')
            continue

        biomass[:, t] = allometry.biomass(species, diameter[:, t])
        increments[:, t] = biomass_increments(biomass[:, t])

    table = pd.DataFrame({
        'TreeID': np.repeat(np.asarray(wide_widths.columns, dtype=object)[np.newaxis, :], n_years, axis=0).ravel(),
        'Year': np.repeat(np.asarray(years), n_trees),
        'ring_position': positions.ravel(),
        'ring_width': grid.ravel(),
        'diameter_cm': diameter.ravel(),
        'biomass_kg': biomass.ravel(),
        'biomass_increment_kg': increments.ravel(),
    })

    table = table.dropna(subset=['ring_position']).sort_values(['TreeID', 'Year']).reset_index(drop=True)
    table['ring_position'] = table['ring_position'].astype(int)
    logger.info(f"Reconstructed diameter and biomass for {table['TreeID'].nunique()} trees")
    return table
