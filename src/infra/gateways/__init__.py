from .auth_api import HttpSessionResolver
from .catalog_api import HttpItemCatalog
from .designs_api import HttpDesignSnapshots

__all__ = ["HttpDesignSnapshots", "HttpItemCatalog", "HttpSessionResolver"]
