"""Image generation package.

Scope:
    Provides the Gemini image-provider adapter, the single-image service, the
    chunked batch orchestrator, the typed failure taxonomy, and local export.

Module split:
    - `client`: HTTP transport and failure classification boundary.
    - `service`: request-to-payload assembly for one image.
    - `batch`: chunk-sequential, intra-chunk-concurrent orchestration.
    - `errors`: typed provider failures.
    - `export`: timestamp-named local file export.
"""
