"""
Services module.

- crud/: generic data-access engine (repositories, query builder, guards)
"""
