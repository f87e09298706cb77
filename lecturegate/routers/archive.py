import asyncio

from fastapi import APIRouter, Depends

from lecturegate.models.dto import ArchiveDownloadOut, ArchiveMetadataOut
from lecturegate.services.archive_metadata import ArchiveMetadataClient
from lecturegate.services.content_sources import extract_archive_identifier
from lecturegate.deps.services import get_archive_client

router = APIRouter(prefix="/api/archive")


@router.get("/{identifier}", response_model=ArchiveMetadataOut)
async def archive_metadata(identifier: str, client: ArchiveMetadataClient = Depends(get_archive_client)):
    meta = await asyncio.to_thread(client.fetch, extract_archive_identifier(identifier))
    return ArchiveMetadataOut(
        identifier=meta.identifier,
        available=meta.available,
        title=meta.title,
        creator=meta.creator,
        description=meta.description,
        embedUrl=meta.embedUrl,
        detailsUrl=meta.detailsUrl,
        downloads=[ArchiveDownloadOut(format=d.format, size=d.size, url=d.url) for d in meta.downloads],
    )
