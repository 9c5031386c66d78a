"""Course catalog: categories, courses, modules and lessons."""
