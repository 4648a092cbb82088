class CyclicAutomatonError(ValueError):
    """Raised when an operation that unfolds label paths meets an explicit cycle."""

    def __init__(self, state=None):
        self.state = state
        msg = "Automaton has an explicit cycle"
        if state is not None:
            msg += f" through state {state}"
        super().__init__(msg)
