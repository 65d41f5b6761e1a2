"""
Configuration: environment settings and category YAML loading.

Modules:
    settings - Environment-driven paths and worker count (.env aware)
    loader - Category YAML -> validated CategoryBundle
"""
