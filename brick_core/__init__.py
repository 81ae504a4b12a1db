"""
Bio Bricks Core - Resource Conversion & Analytics Engine

This module contains the core logic for the Smart Bio Bricks calculator including:
- Material registry and conversion settings
- Derived brick / landfill metrics
- Persistence to a key-value store
- Import of external quantity data
"""

__version__ = "1.0.0"
__author__ = "Smart Bio Bricks Team"

# Canonical material quantities (kg), in display order
DEFAULT_MATERIALS = (
    ("Vegetable peels", 8.0),
    ("Sawdust", 5.0),
    ("Dry leaves", 4.0),
    ("Plastic shreds", 2.0),
    ("Straws / fibers", 1.0),
    ("E-waste", 0.2),
    ("Sand", 0.5),
    ("Other", 0.3),
)

# Brick & landfill settings
DEFAULT_SETTINGS = {
    "brickMass": 2.0,  # kg per brick
    "brickVolume": 0.002,  # m^3 per brick
    "landfillArea": 1000.0,  # m^2
    "landfillDepth": 2.0,  # m
}
SETTING_NAMES = tuple(DEFAULT_SETTINGS)

# Persisted key for a registry quantity is VALUE_KEY_PREFIX + label
VALUE_KEY_PREFIX = "value:"
