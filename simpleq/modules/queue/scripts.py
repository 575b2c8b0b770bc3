"""
Lua scripts executed atomically by Redis.

SAFE_PULL_PIPE
    KEYS[1]: source list
    KEYS[2]: destination list
    ARGV[1]: element

    Removes the element nearest the tail of the source list. The element is
    pushed onto the destination only if something was removed.

    Returns the destination length, or 0 if the element was not in the source.
"""

SAFE_PULL_PIPE = """
local removed = redis.call("LREM", KEYS[1], -1, ARGV[1])
if removed > 0 then
    return redis.call("LPUSH", KEYS[2], ARGV[1])
end
return 0
"""
