"""ratewarden: per-identity, per-endpoint request admission control."""
