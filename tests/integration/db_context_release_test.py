import asyncio

import pytest

from tableview.db_context import DatabaseManager
from tests.integration.user_views import UserTableView


@pytest.mark.asyncio
async def test_connection_released_when_render_fails(test_db_pool):
    """More failing renders than the pool holds; if connections leaked the loop
    would block on pool.acquire()."""
    for _ in range(20):
        with pytest.raises(RuntimeError):
            async with DatabaseManager.transaction("test_db"):
                await UserTableView().render()
                raise RuntimeError("forced error after render")


@pytest.mark.asyncio
async def test_concurrent_renders_share_one_view(test_db_pool):
    view = UserTableView()

    async def render():
        async with DatabaseManager.transaction("test_db"):
            return await view.render()

    results = await asyncio.wait_for(
        asyncio.gather(*(render() for _ in range(10))), timeout=10
    )

    assert all(result == results[0] for result in results)


@pytest.mark.asyncio
async def test_abandoned_stream_releases_connection(test_db_pool):
    for _ in range(10):
        async with DatabaseManager.transaction("test_db"):
            stream = UserTableView().stream_rows()
            async for _row in stream:
                break
            await stream.aclose()
