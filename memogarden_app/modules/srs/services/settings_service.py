# File: memogarden_app/modules/srs/services/settings_service.py
from __future__ import annotations
from typing import Any, Dict
from flask import current_app, has_app_context
from ..config import SRSDefaultConfig
from ..engine.core import SchedulerEngine
from ..engine.retrievability import decay_for


class SRSSettingsService:
    """Resolves SRS configuration: app config first, then module defaults."""

    DEFAULTS: Dict[str, Any] = {
        key: getattr(SRSDefaultConfig, key)
        for key in dir(SRSDefaultConfig)
        if key.startswith('SRS_')
    }

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        if has_app_context() and key in current_app.config:
            return current_app.config[key]
        if key in cls.DEFAULTS:
            return cls.DEFAULTS[key]
        return default

    @classmethod
    def get_srs_params(cls) -> Dict[str, Any]:
        return {
            'parameters': list(cls.get('SRS_PARAMETERS')),
            'desired_retention': float(cls.get('SRS_DESIRED_RETENTION')),
            'min_interval': int(cls.get('SRS_MIN_INTERVAL')),
            'max_interval': int(cls.get('SRS_MAX_INTERVAL')),
            'learning_steps': list(cls.get('SRS_LEARNING_STEPS_MINUTES')),
            'relearning_steps': list(cls.get('SRS_RELEARNING_STEPS_MINUTES')),
        }

    @classmethod
    def build_engine(cls) -> SchedulerEngine:
        return SchedulerEngine(**cls.get_srs_params())

    @classmethod
    def get_decay(cls) -> float:
        return decay_for(cls.get('SRS_PARAMETERS'))
