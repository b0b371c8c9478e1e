class PipelineError(Exception):
    """Base class for errors raised by the pipeline."""


class SourceError(PipelineError):
    """A raw source file is missing or does not have the expected columns."""


class SelectionError(PipelineError):
    """A selector names a model, tag or layer that does not exist."""


class SchemaChangeError(PipelineError):
    """An incremental model's incoming columns no longer match its target table."""

    def __init__(self, model: str, target_columns, incoming_columns):
        self.model = model
        self.target_columns = list(target_columns)
        self.incoming_columns = list(incoming_columns)
        added = [c for c in self.incoming_columns if c not in self.target_columns]
        removed = [c for c in self.target_columns if c not in self.incoming_columns]
        super().__init__(
            f"Schema of '{model}' changed (added: {added}, removed: {removed}); "
            f"on_schema_change is 'fail'. Rebuild with --full-refresh."
        )
