from __future__ import annotations

import os

# system identity, подставляется в команды без system_id
SYSTEM_ID = os.getenv("DHSIM_SYSTEM_ID", "daggerheart")
SYSTEM_VERSION = os.getenv("DHSIM_SYSTEM_VERSION", "1.0.0")

LOG_LEVEL = os.getenv("DHSIM_LOG_LEVEL", "INFO").upper()
