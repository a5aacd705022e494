from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.helpers.restore_state import RestoreEntity
from homeassistant.util import dt as dt_util

from wrapme import LayeringEngine, load_catalog

from .const import (
    CONF_AGE_CATEGORY,
    CONF_CALIBRATION,
    CONF_GENDER,
    CONF_TEMPERATURE_SENSOR,
    DEFAULT_AGE_CATEGORY,
    DEFAULT_CALIBRATION,
    DEFAULT_GENDER,
    DEFAULT_NAME,
)

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback):
    # Catalog loading reads a file, keep it off the event loop
    catalog = await hass.async_add_executor_job(load_catalog)
    options = dict(entry.options or {})
    entity = WrapMeSensor(entry, options, LayeringEngine(catalog))
    async_add_entities([entity])


class WrapMeSensor(RestoreEntity, SensorEntity):
    """Core insulation (clo) of the top recommended outfit."""

    _attr_should_poll = False
    _attr_native_unit_of_measurement = "clo"
    _attr_icon = "mdi:tshirt-crew"

    def __init__(self, entry: ConfigEntry, options: dict, engine: LayeringEngine):
        self._entry = entry
        self._options = options
        self._engine = engine
        self._attr_name = DEFAULT_NAME
        self._attr_unique_id = entry.entry_id
        self._attr_native_value = None
        self._attr_extra_state_attributes: dict[str, Any] = {}

    async def async_added_to_hass(self):
        """Register the temperature listener and compute the first recommendation."""
        await super().async_added_to_hass()
        entity_id = self._options.get(CONF_TEMPERATURE_SENSOR)
        if entity_id:
            self.async_on_remove(
                async_track_state_change_event(self.hass, [entity_id], self._async_inputs_updated)
            )

        old = await self.async_get_last_state()
        if old:
            try:
                self._attr_native_value = float(old.state)
            except ValueError:
                self._attr_native_value = None

        await self._async_update()

    async def _async_inputs_updated(self, event):
        await self._async_update()

    def _temperature(self) -> float | None:
        entity_id = self._options.get(CONF_TEMPERATURE_SENSOR)
        if not entity_id:
            return None
        state = self.hass.states.get(entity_id)
        if state is None:
            return None
        try:
            return float(state.state)
        except ValueError:
            # unknown / unavailable
            return None

    async def _async_update(self):
        """Read the temperature and recompute the recommendation."""
        opts = self._options
        temperature = self._temperature()
        if temperature is None:
            _LOGGER.debug("Temperature sensor %s has no numeric state",
                          opts.get(CONF_TEMPERATURE_SENSOR))
            return

        try:
            result = await self.hass.async_add_executor_job(
                self._engine.recommend_with_diagnostics,
                temperature,
                opts.get(CONF_AGE_CATEGORY, DEFAULT_AGE_CATEGORY),
                opts.get(CONF_GENDER, DEFAULT_GENDER),
                int(opts.get(CONF_CALIBRATION, DEFAULT_CALIBRATION)),
            )
        except Exception as err:
            _LOGGER.exception("Error computing layering recommendation: %s", err)
            self._attr_native_value = None
            self._attr_extra_state_attributes = {"error": str(err), "inputs": opts}
            self.async_write_ha_state()
            return

        requirements = result.requirements
        outfits = result.outfits
        self._attr_native_value = round(outfits[0].core_clo, 3) if outfits else None
        self._attr_extra_state_attributes = {
            "temperature": temperature,
            "risk_level": requirements.risk_level.value,
            "alert": requirements.alert.value,
            "max_exposure": requirements.max_exposure,
            "warning": requirements.warning,
            "requirements": requirements.as_dict(),
            "outfits": [outfit.as_dict() for outfit in outfits],
            "rejections": {reason.value: n for reason, n in result.rejections.items()},
            "last_update": dt_util.utcnow().isoformat(),
        }
        self.async_write_ha_state()
