# http_server/server.py
from aiohttp import web

async def handle_ping(_):
    return web.Response(text="pong")

def make_app(cache):
    app = web.Application()
    app["cache"] = cache

    async def handle_health(_request):
        return web.json_response({"status": "ok", "cache": app["cache"].stats()})

    app.router.add_get("/", handle_ping)
    app.router.add_get("/healthz", handle_health)
    return app

async def start_http_server(port: int, cache):
    app = make_app(cache)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    return runner

async def stop_http_server(runner):
    await runner.cleanup()
