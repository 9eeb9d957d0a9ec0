"""Presentation file storage for the conference portal.

Uploads are staged by ``app.uploads`` and recorded as ``pending``. The
lifecycle manager in this package copies them to

    uploads/{hall}/Day_{n}/{slot_ordinal}_{speaker_code}_{basename}{ext}

marks them ``processed`` (or ``failed``) and deletes them on request.

Processing runs once shortly after startup, after each upload, and on
demand via ``POST /files/process``; there is no polling loop.
"""
