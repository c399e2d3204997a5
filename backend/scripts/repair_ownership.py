"""Repair ownership on an existing store without installing the package."""
import sys
from pathlib import Path

# Add backend to path so imports work
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from gantt.db.repair import main


if __name__ == "__main__":
    sys.exit(main())
