"""
Migrate existing rankings from the flat config layout to the namespaced one.

- Scans every document in the 'rankings' collection.
- Rankings that already carry a '<format>Config' record are skipped.
- Runs as a dry run unless --live is passed; live runs keep a backup of each
  original config in 'rankingConfigBackups' so 'rollback' can restore it.

Run `python scripts/migrate_configs.py --help` for the available commands.
"""

import sys
from pathlib import Path

# Add the project root to the Python path to allow importing 'padelrank'
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from padelrank.migration.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
