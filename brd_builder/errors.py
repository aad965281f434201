class BrdBuilderError(Exception):
    pass


class InputEmptyError(BrdBuilderError, ValueError):
    """Raised before rendering when the BRD markdown has no content."""


class RecoverableAssetError(BrdBuilderError):
    """A diagram or logo could not be fetched, decoded or embedded.

    Always caught where the asset is embedded; the document is rendered
    with the image left out.
    """


class ExtractionError(BrdBuilderError):
    pass


class GenerationError(BrdBuilderError):
    pass
