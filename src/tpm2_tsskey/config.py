# SPDX-License-Identifier: BSD-2
import json
import pkgutil

CONFIG = json.loads(pkgutil.get_data(__package__, "config.json").decode())

STRICT_BOOLEAN = bool(CONFIG.get("strict_boolean", False))
