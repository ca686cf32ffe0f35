"""Root-level conftest.py — its presence puts the checkout root on sys.path.

That lets the test suite import the local `hud` package from a source
checkout without an editable install.
"""
