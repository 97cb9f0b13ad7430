import asyncio

import corowrap


async def dummy_fetch_user(id):
    await asyncio.sleep(0)
    return {"id": id}


def pytest_markdown_docs_globals():
    return {
        "asyncio": asyncio,
        "corowrap": corowrap,
        "fetch_user": dummy_fetch_user,
    }
