class ArchetypeError(Exception):
    pass


# ─── Data errors: the flow moves to its Error state ─────────────

class FlowDataError(ArchetypeError):
    """Raised for problems with the descriptor or the supplied answers.

    These are reported through the flow's terminal Error state rather than
    aborting the caller.
    """
    pass

class DuplicateBindingError(FlowDataError):
    """Raised when a context path is supplied again with a different value."""
    pass

class TypeMismatchError(FlowDataError):
    """Raised when an answer does not fit the kind of the input expecting it."""
    pass

class DescriptorError(FlowDataError):
    """Raised when the descriptor tree fails validation."""
    pass

class ContextOverflowError(FlowDataError):
    """Raised when the context map exceeds its size limit."""
    pass


# ─── Protocol errors: always propagate ──────────────────────────

class FlowProtocolError(ArchetypeError):
    pass

class EmptyStackError(FlowProtocolError):
    pass

class IllegalStateError(FlowProtocolError):
    """Raised when build is invoked on a terminal flow state."""
    pass

class UnhandledVariantError(FlowProtocolError):
    """Raised when a pass meets a node kind it has no case for."""
    pass
