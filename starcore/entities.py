"""Helpers over the entity records stored in a world's entity layer."""

OBJECT_ENTITY = "ObjectEntity"


def is_object(entity) -> bool:
    return entity.identifier == OBJECT_ENTITY and entity.data is not None and entity.data.is_map()


def is_owned_chest(entity) -> bool:
    """An object with an item grid that a player placed (or the ship locker)."""
    if not is_object(entity) or not entity.data.contains_key("items"):
        return False
    if entity.data.get_by_path("parameters/owner") is not None:
        return True
    name = entity.data.get_by_key("name")
    return name is not None and "shiplocker" in name.as_string()


def container_items(entity):
    """(item name, count) for every occupied slot of a container object."""
    if not is_object(entity):
        return []
    items = entity.data.get_by_key("items")
    if items is None:
        return []
    found = []
    for item in items.as_sbon_list():
        if item is None:
            continue
        content = item.get_by_key("content") if item.is_map() else None
        if content is None:
            continue
        count = content.get_by_key("count")
        found.append((content.get_by_key("name").as_string(), count.as_int() if count else 1))
    return found
