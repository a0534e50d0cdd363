"""hbckit: Hermes bytecode build tooling."""
