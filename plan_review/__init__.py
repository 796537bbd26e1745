"""
Plan review core package.

It splits markdown plans into line-anchored blocks, renders them for display,
and keeps review threads attached to blocks of a specific plan version. The
`markdown` subpackage holds the parser and renderer; the `review` subpackage
holds the records, the storage boundary, thread grouping, export and search.
"""
