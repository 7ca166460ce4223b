"""City layout constants for the 2025 street plan.

Changing any value here moves every computed coordinate.
"""

# Golden Spike, the origin of the clock/ring grid
MAN_LAT = 40.786958
MAN_LON = -119.202994

ESPLANADE_RADIUS_FT = 2500

# Aligns the 4:30 axis with true north/south
CITY_ROTATION_DEG = 45

RING_ORDER = "ABCDEFGHIJK"
ESPLANADE_NAMES = ("ESPLANADE", "ESPL")

# Street widths in feet
STREET_WIDTH_FT = {
    'Esplanade': 40,
    'A': 30, 'B': 30, 'C': 30, 'D': 30, 'E': 40,
    'F': 30, 'G': 30, 'H': 30, 'I': 30, 'J': 30, 'K': 50,
}

# Block depths in feet
BLOCK_DEPTH_FT = {
    'A': 400, 'B': 250, 'C': 250, 'D': 250, 'E': 250,
    'F': 450, 'G': 250, 'H': 250, 'I': 250, 'J': 150, 'K': 150,
}

FT2M = 0.3048
EARTH_RADIUS_M = 6371000

CENTER_CAMP_PLAZA = "Center Camp Plaza"
CENTER_CAMP_CLOCK = "6:00"

CITY_TIMEZONE = "America/Los_Angeles"
