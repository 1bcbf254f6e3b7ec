"""python -m ask_core：启动 HTTP 服务。"""

import uvicorn

from ask_core.config.settings import settings


def main() -> None:
    uvicorn.run("ask_core.api.http_app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
