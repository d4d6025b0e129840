"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

OTP_DIGITS = 6
OTP_VALIDITY_SECONDS = 20

# Column widths in database/schema.sql.
SHORT_TEXT_MAX = 64
LONG_TEXT_MAX = 255
