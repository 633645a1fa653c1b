"""Category types created by ``scripts/seed_authz.py --with-category-types``."""

# (name, slug, variant)
DEFAULT_CATEGORY_TYPES = [
    ('Earthmoving Equipment', 'earthmoving-equipment', 'equipment'),
    ('Compaction Equipment', 'compaction-equipment', 'equipment'),
    ('Concrete and Asphalt Equipment', 'concrete-and-asphalt-equipment', 'equipment'),
    ('Lifting Equipment', 'lifting-equipment', 'equipment'),
    ('Diesel Generators', 'diesel-generators', 'equipment'),
    ('Scaffolding', 'scaffolding', 'scaffolding'),
    ('Shuttering', 'shuttering', 'scaffolding'),
    ('Others', 'others-equipment', 'equipment'),
    ('Others', 'others-scaffolding', 'scaffolding'),
]
