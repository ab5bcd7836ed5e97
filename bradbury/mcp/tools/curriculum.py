from bradbury.errors import NotFound, ValidationError
from bradbury.local_store import LocalStore
from bradbury.mcp.tools.errors import error_response
from bradbury.schemas.records import sort_topic_items


async def list_curriculum(local: LocalStore) -> list[dict]:
    topics = await local.list_topics()
    out = []
    for topic in topics:
        data = topic.to_json()
        data["items"] = [it.to_json() for it in sort_topic_items(topic.items)]
        data["finishedCount"] = sum(1 for it in topic.items if it.finished)
        out.append(data)
    return out


async def add_topic(local: LocalStore, name: str) -> dict:
    try:
        topic = await local.add_topic(name)
    except ValidationError as e:
        return error_response(e)
    return topic.to_json()


async def add_reading_list_item(
    local: LocalStore,
    topic_id: str,
    title: str,
    category: str,
    url: str = "",
    author: str = "",
    word_count: int | None = None,
    notes: str = "",
    tags: list[str] | None = None,
) -> dict:
    try:
        item = await local.add_topic_item(
            topic_id,
            title=title,
            category=category,
            url=url,
            author=author,
            word_count=word_count,
            notes=notes,
            tags=tags,
        )
    except (ValidationError, NotFound) as e:
        return error_response(e)
    return item.to_json()


async def toggle_item(local: LocalStore, topic_id: str, item_id: str) -> dict:
    try:
        item = await local.toggle_topic_item_finished(topic_id, item_id)
    except NotFound as e:
        return error_response(e)
    return item.to_json()


async def remove_item(local: LocalStore, topic_id: str, item_id: str) -> dict:
    removed = await local.delete_topic_item(topic_id, item_id)
    return {"ok": True, "removed": removed}
