"""
Core building blocks shared by the PMS sync service: DDD base classes,
the dependency container, application factory and lifecycle.
"""
