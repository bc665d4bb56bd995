"""
Generation configuration for world maps.

Every range constraint is declared on the model fields, so an invalid value
is rejected before any generation work begins. Input keys may be given in
snake_case or in the camelCase used by map files and viewers
(``plotCount``, ``oceanPercentage``, ...).
"""

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel, to_snake

from ..exceptions import ConfigurationError


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
        frozen=True,
    )


class Dimensions(_ConfigModel):
    """Domain size in map units."""

    width: float = Field(default=1000.0, gt=0, description="Domain width")
    height: float = Field(default=600.0, gt=0, description="Domain height")


class TerrainSettings(_ConfigModel):
    """Terrain shaping parameters."""

    ocean_percentage: float = Field(default=0.65, ge=0, le=1, description="Fraction of cells that are water")
    continent_count: int = Field(default=4, ge=1, description="Approximate number of land masses")
    island_frequency: float = Field(default=0.15, ge=0, le=1, description="Weight of ridge/island perturbation")
    coastal_roughness: float = Field(default=0.3, ge=0, le=1, description="Weight of high-frequency coastline noise")


class ProjectionSettings(_ConfigModel):
    """Topology of the map domain."""

    wrap_horizontal: bool = Field(default=True, description="Stitch left and right edges")
    wrap_vertical: bool = Field(default=False, description="Stitch top and bottom edges")
    pole_scaling: float = Field(default=1.0, ge=1.0, description="Site density compression toward the poles")


class MapConfig(_ConfigModel):
    """Complete input of one ``generate`` call."""

    plot_count: int = Field(
        default=2000,
        ge=3,
        validation_alias=AliasChoices("plot_count", "plotCount", "numParcels", "num_parcels"),
        serialization_alias="plotCount",
        description="Number of cells",
    )
    dimensions: Dimensions = Field(default_factory=Dimensions)
    random_seed: Optional[int] = Field(default=None, description="Map seed; time-derived when absent")
    terrain: TerrainSettings = Field(default_factory=TerrainSettings)
    projection: ProjectionSettings = Field(default_factory=ProjectionSettings)
    relaxation_steps: int = Field(default=3, ge=0, description="Lloyd's relaxation iterations")
    resource_density: float = Field(default=1.0, ge=0, le=1, description="Scale on resource spawn probabilities")
    climate_variance: float = Field(default=0.2, ge=0, description="Weight of temperature noise")

    def to_dict(self) -> Dict[str, Any]:
        """camelCase, JSON-safe echo of the configuration."""
        return self.model_dump(by_alias=True, mode="json")


def default_map_config() -> MapConfig:
    """The stock configuration."""
    return MapConfig()


def _error_field(error: Dict[str, Any]) -> str:
    return ".".join(to_snake(str(part)) for part in error.get("loc", ()))


def build_map_config(
    config: Union[MapConfig, Mapping[str, Any], None] = None,
    max_plot_count: Optional[int] = None,
    **overrides: Any,
) -> MapConfig:
    """
    Validate a configuration, merging a partial mapping over the defaults.

    Args:
        config: A MapConfig, a (possibly partial) mapping, or None for defaults
        max_plot_count: Optional upper bound on ``plot_count``
        **overrides: Top-level fields applied on top of ``config``

    Returns:
        Validated MapConfig

    Raises:
        ConfigurationError: naming the first offending field
    """
    if isinstance(config, MapConfig):
        data: Dict[str, Any] = config.model_dump()
    else:
        data = {to_snake(key): value for key, value in (config or {}).items()}
    data.update({to_snake(key): value for key, value in overrides.items()})

    try:
        result = MapConfig.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = _error_field(first)
        raise ConfigurationError(f"Invalid configuration for '{field}': {first['msg']}", field=field) from exc

    if max_plot_count is not None and result.plot_count > max_plot_count:
        raise ConfigurationError(
            f"plot_count {result.plot_count} exceeds the maximum of {max_plot_count}",
            field="plot_count",
        )
    return result
