# utils/constants.py

# --- Results Table ---
SCORE_COLUMN = "score"

# --- Cross-Validation Defaults ---
# A missing splitter falls back to a shuffled K-Fold with a fixed seed so
# repeated searches see the same folds.
DEFAULT_CV_SPLITS = 3
DEFAULT_CV_SHUFFLE = True
DEFAULT_CV_SEED = 42

# --- Execution ---
DISPATCH_STATIC = "static"      # contiguous index ranges, one per worker
DISPATCH_DYNAMIC = "dynamic"    # one index per task, handed out as workers free up
DISPATCH_STRATEGIES = (DISPATCH_STATIC, DISPATCH_DYNAMIC)

ON_ERROR_RAISE = "raise"        # first failure (in enumeration order) aborts the run
ON_ERROR_COLLECT = "collect"    # failures are reported per assignment / fold
ERROR_POLICIES = (ON_ERROR_RAISE, ON_ERROR_COLLECT)

PARALLEL_BACKEND = "threading"

# --- Resource Limits ---
MAX_SEARCH_CONFIGURATIONS = 1000   # Prevent accidental combinatoric explosions
GRID_SIZE_WARNING_RATIO = 0.8
MAX_MEMORY_USAGE_PERCENT = 80
MIN_CV_SPLITS = 2

# --- Logging ---
DEFAULT_LOG_DIR = "logs"
LOG_FILE_NAME = "grid_search.log"
