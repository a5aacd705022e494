from __future__ import annotations

from typing import Any, Dict, Optional

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers.selector import selector

from wrapme.const import AGE_CATEGORIES, CALIBRATION_RANGE, GENDERS

from .const import (
    CONF_AGE_CATEGORY,
    CONF_CALIBRATION,
    CONF_GENDER,
    CONF_TEMPERATURE_SENSOR,
    DEFAULT_AGE_CATEGORY,
    DEFAULT_CALIBRATION,
    DEFAULT_GENDER,
    DEFAULT_NAME,
    DOMAIN,
)


def _profile_schema(defaults: Dict[str, Any]) -> vol.Schema:
    """Temperature source and wearer profile, pre-filled from ``defaults``."""
    low, high = CALIBRATION_RANGE
    return vol.Schema(
        {
            vol.Required(
                CONF_TEMPERATURE_SENSOR, default=defaults.get(CONF_TEMPERATURE_SENSOR)
            ): selector({"entity": {"domain": "sensor", "device_class": "temperature"}}),
            vol.Required(
                CONF_AGE_CATEGORY, default=defaults.get(CONF_AGE_CATEGORY, DEFAULT_AGE_CATEGORY)
            ): selector({"select": {"options": AGE_CATEGORIES, "mode": "dropdown"}}),
            vol.Required(
                CONF_GENDER, default=defaults.get(CONF_GENDER, DEFAULT_GENDER)
            ): selector({"select": {"options": GENDERS, "mode": "dropdown"}}),
            vol.Required(
                CONF_CALIBRATION, default=defaults.get(CONF_CALIBRATION, DEFAULT_CALIBRATION)
            ): selector({"number": {"min": low, "max": high, "step": 1, "mode": "slider"}}),
        }
    )


class WrapMeConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        """Handle the initial step."""
        if user_input is not None:
            # Profile lives in options so the options flow can edit it later
            return self.async_create_entry(title=DEFAULT_NAME, data={}, options=user_input)

        return self.async_show_form(step_id="user", data_schema=_profile_schema({}))

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return OptionsFlowHandler()


class OptionsFlowHandler(config_entries.OptionsFlow):

    async def async_step_init(self, user_input: Optional[Dict[str, Any]] = None):
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        defaults = dict(self.config_entry.options or {})
        return self.async_show_form(step_id="init", data_schema=_profile_schema(defaults))
