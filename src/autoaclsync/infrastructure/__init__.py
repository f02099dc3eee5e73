"""
Infrastructure layer package.

Contains external system adapters:
- Local workbook spreadsheet store (sheets)
- File-backed device fleet (devices)
- Lock file and atomic file replacement
- Configuration loading and logging setup
"""
