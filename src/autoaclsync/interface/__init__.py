"""
Interface layer package.

Contains the command line interface: argument parsing, rich help and
result formatting.
"""
