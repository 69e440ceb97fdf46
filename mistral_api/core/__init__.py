"""Request-construction core.

Module split:
    - `endpoints`: immutable operation registry.
    - `url_builder`: path interpolation and query encoding.
    - `request_builder`: JSON / multipart / query payload classification.
    - `arguments`: positional argument disambiguation.
    - `errors`: typed failure taxonomy shared by every layer.
"""
