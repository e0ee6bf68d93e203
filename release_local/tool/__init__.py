"""Command line tool for installing and upgrading chart releases."""
