from fastapi import HTTPException, Request

from pinkeeper.services.runtime import BotRuntime


def get_runtime(request: Request) -> BotRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Bot is not running")
    return runtime
