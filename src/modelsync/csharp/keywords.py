"""C# reserved words."""

RESERVED = frozenset(
    """
    abstract as base bool break byte case catch char checked class const continue
    decimal default delegate do double else enum event explicit extern false finally
    fixed float for foreach goto if implicit in int interface internal is lock long
    namespace new null object operator out override params private protected public
    readonly ref return sbyte sealed short sizeof stackalloc static string struct
    switch this throw true try typeof uint ulong unchecked unsafe ushort using virtual
    void volatile while
    """.split()
)


def escape_identifier(name: str) -> str:
    """Verbatim identifier for names that collide with a keyword."""
    return f"@{name}" if name in RESERVED else name
