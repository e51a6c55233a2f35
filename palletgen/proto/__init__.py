"""Runtime support for generated palletgen bindings."""
