"""Beef herd management tools.

This package reconstructs genealogy from flat herd records, derives
zootechnical metrics (GMD, DEP, KPIs, weight predictions) and guards the
generative AI assistant with a call quota.

Subpackages:
- rebanho.core: Configuration, units, rate limiter and AI client
- rebanho.data: Herd record model and snapshot loading
- rebanho.genealogy: Identity resolution, ancestor/descendant trees, grouping
- rebanho.metrics: GMD, weight prediction, DEP, reference period, metrics service
- rebanho.cli: Command-line tools
"""

__version__ = "0.1.0"
