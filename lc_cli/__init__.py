"""Command line front-end for the language pack catalog."""
