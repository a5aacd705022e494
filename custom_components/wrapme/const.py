"""Constants for the WrapMe integration."""

DOMAIN = "wrapme"
DEFAULT_NAME = "WrapMe Layering"

CONF_TEMPERATURE_SENSOR = "temperature_sensor"
CONF_AGE_CATEGORY = "age_category"
CONF_GENDER = "gender"
CONF_CALIBRATION = "calibration"

DEFAULT_AGE_CATEGORY = "adult"
DEFAULT_GENDER = "unspecified"
DEFAULT_CALIBRATION = 0
