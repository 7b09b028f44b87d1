"""Puts the repository root on ``sys.path`` so tests import ``personreid`` and ``scripts`` in place."""
