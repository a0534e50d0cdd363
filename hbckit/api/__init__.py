"""
Library surface for hbckit.

- `hbckit.api.path_utils`: project-root discovery and node-style module lookup.
- `hbckit.api.hermes`: bytecode build pipeline, header inspection, source maps.
"""
