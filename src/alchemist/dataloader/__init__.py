from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.entities_loader import EntitiesLoader
from alchemist.dataloader.rules_loader import RulesLoader
from alchemist.dataloader.types import LoadResult

__all__ = ["ConfigLoader", "EntitiesLoader", "LoadResult", "RulesLoader"]
