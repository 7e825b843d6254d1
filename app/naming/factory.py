from app.config.settings import Settings
from app.naming.base import BaseNamingStrategy
from app.naming.overwrite import OverwriteNamingStrategy
from app.naming.versioned import VersionedNamingStrategy


class NamingStrategyFactory:
    """Creates the naming strategy selected by settings."""

    STRATEGIES: dict[str, type[BaseNamingStrategy]] = {
        "versioned": VersionedNamingStrategy,
        "overwrite": OverwriteNamingStrategy,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseNamingStrategy:
        policy = settings.naming_policy.lower()
        strategy_cls = cls.STRATEGIES.get(policy)
        if strategy_cls is None:
            raise ValueError(
                f"Unknown naming policy '{policy}'. Choose from: {list(cls.STRATEGIES)}"
            )
        return strategy_cls()
