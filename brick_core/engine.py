"""
Resource conversion engine.

Holds the material registry (label -> kg) and the conversion settings,
derives brick and landfill metrics on every read, validates mutations,
notifies subscribers and persists state to a key-value store.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Tuple

from pydantic import ValidationError

from brick_core import DEFAULT_MATERIALS, DEFAULT_SETTINGS, VALUE_KEY_PREFIX
from brick_core.schemas import (
    SETTING_FIELDS,
    ConversionSettings,
    ConversionSummary,
    ImportReport,
    UpdateResult,
    UpdateStatus,
)
from brick_core.store import PersistenceUnavailable
from brick_core.utils import clamp, coerce_quantity, label_matches, normalize_import_key, safe_divide

logger = logging.getLogger(__name__)

Subscriber = Callable[["ConversionEngine"], None]


def default_settings() -> ConversionSettings:
    return ConversionSettings(**{SETTING_FIELDS[name]: value for name, value in DEFAULT_SETTINGS.items()})


class ConversionEngine:
    """Material registry, conversion settings and derived metrics"""

    def __init__(self, store=None):
        """
        Initialize engine with the canonical defaults

        Args:
            store: optional key-value store with get(key) / set(key, value);
                   when given, every successful mutation is saved to it
        """
        self.store = store
        self._values: Dict[str, float] = dict(DEFAULT_MATERIALS)
        self._settings = default_settings()
        self._subscribers: List[Subscriber] = []

    # ---------- State ----------

    @property
    def values(self) -> Dict[str, float]:
        return dict(self._values)

    @property
    def labels(self) -> List[str]:
        return list(self._values)

    @property
    def settings(self) -> ConversionSettings:
        return ConversionSettings(**self._settings_dict())

    @property
    def brick_mass(self) -> float:
        return self._settings.brick_mass

    @property
    def brick_volume(self) -> float:
        return self._settings.brick_volume

    @property
    def landfill_area(self) -> float:
        return self._settings.landfill_area

    @property
    def landfill_depth(self) -> float:
        return self._settings.landfill_depth

    def get_setting(self, name: str) -> float:
        return getattr(self._settings, self._setting_field(name))

    def ordered_entries(self) -> List[Tuple[str, float]]:
        """Registry (label, kg) pairs in canonical order"""
        return list(self._values.items())

    # ---------- Derived metrics ----------

    def total_available_waste(self) -> float:
        return sum(self._values.values())

    def bricks_producible(self) -> int:
        if self.brick_mass <= 0:
            return 0
        return math.floor(self.total_available_waste() / self.brick_mass)

    def volume_diverted(self) -> float:
        return self.bricks_producible() * self.brick_volume

    def area_reduced(self) -> float:
        return safe_divide(self.volume_diverted(), self.landfill_depth)

    def percent_landfill_reduced(self) -> float:
        if self.landfill_area <= 0:
            return 0.0
        return clamp(self.area_reduced() / self.landfill_area * 100.0, 0.0, 100.0)

    def summary(self) -> ConversionSummary:
        percent = self.percent_landfill_reduced()
        return ConversionSummary(
            total_waste_kg=self.total_available_waste(),
            bricks=self.bricks_producible(),
            volume_diverted_m3=self.volume_diverted(),
            area_reduced_m2=self.area_reduced(),
            percent_reduced=percent,
            progress=percent / 100.0,
        )

    def composition(self) -> List[Tuple[str, float, float]]:
        """(label, kg, share %) for every non-zero entry, in registry order"""
        total = self.total_available_waste()
        return [
            (label, kg, safe_divide(kg, total) * 100.0)
            for label, kg in self._values.items()
            if kg > 0
        ]

    # ---------- Subscriptions ----------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback(engine); returns a function that unregisters it"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed")

    def _changed(self):
        """Persist (when a store is attached) and notify after a mutation"""
        if self.store is not None:
            try:
                self.save()
            except PersistenceUnavailable as e:
                logger.error(f"Auto-save failed, keeping in-memory state: {e}")
        self._notify()

    # ---------- Mutations ----------

    def update_value(self, label: str, new_quantity: float) -> UpdateResult:
        """Set one material quantity; negative quantities are stored as 0"""

        if label not in self._values:
            logger.warning(f"Unknown material label: {label!r}")
            return UpdateResult(status=UpdateStatus.LABEL_NOT_FOUND, target=label)

        previous = self._values[label]
        quantity = coerce_quantity(new_quantity)
        if quantity is None:
            logger.warning(f"Rejected {label}={new_quantity!r}; keeping {previous}")
            return UpdateResult(status=UpdateStatus.REJECTED, target=label,
                                value=previous, previous=previous)

        stored = max(0.0, quantity)
        self._values[label] = stored
        logger.debug(f"{label}: {previous} -> {stored} kg")
        self._changed()

        status = UpdateStatus.CLAMPED if stored != quantity else UpdateStatus.OK
        return UpdateResult(status=status, target=label, value=stored, previous=previous)

    def update_setting(self, name: str, new_value: float) -> UpdateResult:
        """Set one conversion setting; values <= 0 are rejected"""

        if name not in SETTING_FIELDS and name not in SETTING_FIELDS.values():
            logger.warning(f"Unknown setting: {name!r}")
            return UpdateResult(status=UpdateStatus.UNKNOWN_SETTING, target=name)

        field = self._setting_field(name)
        previous = getattr(self._settings, field)

        proposed = self._settings_dict()
        proposed[field] = new_value
        try:
            self._settings = ConversionSettings(**proposed)
        except ValidationError:
            logger.warning(f"Rejected {name}={new_value!r}; keeping {previous}")
            return UpdateResult(status=UpdateStatus.REJECTED, target=name,
                                value=previous, previous=previous)

        logger.info(f"Setting {name}: {previous} -> {self.get_setting(name)}")
        self._changed()
        return UpdateResult(status=UpdateStatus.OK, target=name,
                            value=self.get_setting(name), previous=previous)

    def set_all(self, new_values: Mapping[str, float]) -> List[str]:
        """
        Replace quantities for every known label in new_values.
        Returns the labels that were not recognised or had no numeric value.
        """
        unknown = []
        for label, quantity in new_values.items():
            number = coerce_quantity(quantity)
            if label in self._values and number is not None:
                self._values[label] = max(0.0, number)
            else:
                unknown.append(label)

        if unknown:
            logger.warning(f"Ignored labels: {unknown}")
        self._changed()
        return unknown

    def reset_to_defaults(self):
        """Restore canonical quantities and settings in one step"""
        self._values = dict(DEFAULT_MATERIALS)
        self._settings = default_settings()
        logger.info("Reset registry and settings to defaults")
        self._changed()

    # ---------- Import ----------

    def import_quantities(self, source: Mapping[Any, Any]) -> ImportReport:
        """
        Update registry entries from an external key -> kg mapping.

        Keys are lowercased with underscores read as spaces, then matched
        against every label: the label contains the key, or the key contains
        the label's first word. One key may update several labels. Values
        that don't coerce to a number are skipped.
        """
        report = ImportReport()

        for key, raw_value in source.items():
            if raw_value is None:
                continue

            normalized_key = normalize_import_key(key)
            matched = [label for label in self._values if label_matches(label, normalized_key)]
            if not matched:
                report.unmatched.append(str(key))
                continue

            quantity = coerce_quantity(raw_value)
            if quantity is None:
                logger.warning(f"Skipping {key!r}: {raw_value!r} is not a number")
                report.malformed.append(str(key))
                continue

            for label in matched:
                self._values[label] = max(0.0, quantity)
            report.matched[str(key)] = matched

        logger.info(f"Imported {len(report.matched)} entries, "
                    f"{len(report.unmatched)} unmatched, {len(report.malformed)} malformed")
        self._changed()
        return report

    # ---------- Persistence ----------

    def save(self):
        """Write every quantity and setting as its own entry"""
        store = self._require_store()
        for label, quantity in self._values.items():
            store.set(VALUE_KEY_PREFIX + label, quantity)
        for name in SETTING_FIELDS:
            store.set(name, self.get_setting(name))

    def load(self):
        """Overwrite state with stored entries; missing or invalid entries keep current values"""
        store = self._require_store()

        # read everything first so a failing store leaves state untouched
        values = dict(self._values)
        for label in values:
            stored = store.get(VALUE_KEY_PREFIX + label)
            if stored is None:
                continue
            quantity = coerce_quantity(stored)
            if quantity is None:
                logger.warning(f"Ignoring stored value for {label}: {stored!r}")
                continue
            values[label] = max(0.0, quantity)

        settings = self._settings_dict()
        for name, field in SETTING_FIELDS.items():
            stored = coerce_quantity(store.get(name))
            if stored is None:
                continue
            if stored <= 0:
                logger.warning(f"Ignoring stored setting {name}={stored}")
                continue
            settings[field] = stored

        self._values = values
        self._settings = ConversionSettings(**settings)

        logger.info("Loaded engine state from store")
        self._notify()

    # ---------- Helpers ----------

    def _require_store(self):
        if self.store is None:
            raise PersistenceUnavailable("No key-value store attached")
        return self.store

    def _settings_dict(self) -> Dict[str, float]:
        return {field: getattr(self._settings, field) for field in SETTING_FIELDS.values()}

    @staticmethod
    def _setting_field(name: str) -> str:
        return SETTING_FIELDS.get(name, name)
