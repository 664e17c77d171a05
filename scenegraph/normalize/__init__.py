"""Scene-tree normalization pipeline."""

from .color_variables import (
    ColorVariableResolver,
    collect_subtree_color_mappings,
    get_variable_name_from_color,
    variable_to_color_name,
)
from .context import ConversionContext, ConversionSettings, ConversionWarnings
from .normalizer import TreeNormalizer, nodes_to_json

__all__ = [
    "ColorVariableResolver",
    "ConversionContext",
    "ConversionSettings",
    "ConversionWarnings",
    "TreeNormalizer",
    "collect_subtree_color_mappings",
    "get_variable_name_from_color",
    "nodes_to_json",
    "variable_to_color_name",
]
