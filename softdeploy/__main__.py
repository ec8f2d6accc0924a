from __future__ import annotations

import uvicorn

from softdeploy.app import create_app
from softdeploy.services.settings_service import SettingsService
from softdeploy.utils.paths import SETTINGS_DIR


def main() -> None:
    server = SettingsService(SETTINGS_DIR / "settings.json").load()["server"]
    uvicorn.run(create_app(), host=server["host"], port=int(server["port"]))


if __name__ == "__main__":
    main()
