"""Language-pack catalog engine: import, reconcile, bind and export translation catalogs."""
