import logging

from billcalc.configs.billing import (
    DEFAULT_CONFIG,
    BillingConfig,
    load_config_or_default,
    schedule_warnings,
    serialize_config,
)
from billcalc.managers.bill_manager import BillResult, Number, compute
from billcalc.managers.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class BillingSession:
    """Holds the live BillingConfig and keeps the store in sync with it.

    Edits always replace the whole config; every replacement is saved.
    """

    def __init__(self, store: SettingsStore, config: BillingConfig = DEFAULT_CONFIG):
        self.store = store
        self._config = config

    @classmethod
    def open(cls, store: SettingsStore) -> "BillingSession":
        config = load_config_or_default(store.load())
        for warning in schedule_warnings(config):
            logger.warning("Rate schedule: %s", warning)
        return cls(store, config)

    @property
    def config(self) -> BillingConfig:
        return self._config

    def replace_config(self, config: BillingConfig) -> BillingConfig:
        self.store.save(serialize_config(config))
        self._config = config
        logger.info("Replaced billing config (%d tiers)", len(config.usage_rate_map))
        return config

    def reset(self) -> BillingConfig:
        return self.replace_config(DEFAULT_CONFIG)

    def bill(self, usage: Number) -> BillResult:
        return compute(usage, self._config)
