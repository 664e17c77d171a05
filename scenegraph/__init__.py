"""Scene graph bridge package.

Subpackages:
- nodes: Normalized node model (tagged variants per node kind) and paint types
- normalize: Scene-tree normalization pipeline (naming, rotation, geometry,
  vector flattening, color variables, layout defaults)
- integrations: Host collaborators (in-memory document host, Figma REST client)
- transport: Channel message schemas, chunked sender and receiver
"""
