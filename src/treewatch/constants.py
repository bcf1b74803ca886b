"""Constants for treewatch."""

# Hidden snapshot directory (created under the watched root)
SNAPSHOT_DIR = ".initialstate"

# Session files
MANIFEST_FILE = ".initialstate.json"  # inside SNAPSHOT_DIR
LOCK_FILE = ".initialstate.lock"      # beside SNAPSHOT_DIR, at the watched root

# Per-root configuration (both ignored by the ".treewatch" default pattern)
CONFIG_FILE = ".treewatch.yaml"
IGNORE_FILE = ".treewatchignore"

# Seconds to wait for another begin/end on the same root
DEFAULT_LOCK_TIMEOUT = 30.0

# Version
TREEWATCH_VERSION = "0.1.0"
