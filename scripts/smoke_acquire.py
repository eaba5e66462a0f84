# scripts/smoke_acquire.py
import asyncio
import logging
import os

from leadgenie.schemas import AcquisitionOut
from leadgenie.service_layer.use_cases.acquire import acquire_leads_with_status


async def main():
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    keywords = [k for k in os.environ.get("KEYWORDS", "motivated,as-is").split(",") if k.strip()]
    res = await acquire_leads_with_status(
        os.environ.get("LOCATION", "Austin, TX"),
        keywords,
        listing_type=os.environ.get("LISTING_TYPE", "both"),
        max_retries=int(os.environ.get("MAX_RETRIES", "2")),
    )
    print(AcquisitionOut.from_result(res).model_dump_json(indent=2))


if __name__ == "__main__":
    asyncio.run(main())
