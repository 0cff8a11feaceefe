"""HTTP surface of the Orgboard service."""
