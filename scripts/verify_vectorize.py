import asyncio
import logging
import os
import random
import sys
import uuid

# Add project root to path so we can import vecstore
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vecstore.core.config import StoreConfig, settings
from vecstore.integrations.vector.vectorize import VectorizeVectorStore


async def main():
    logging.basicConfig(level=settings.app_log_level)
    print("--- Verifying Cloudflare Vectorize Integration ---")

    config = StoreConfig.from_settings()
    if not config.account_id or not config.api_token.get_secret_value():
        print("Please set VECTORIZE_ACCOUNT_ID and VECTORIZE_API_TOKEN env variables.")
        return

    print(f"Index: {config.index_name} (dimensions={config.dimension}, metric={config.metric})")

    vector = [random.random() for _ in range(config.dimension)]
    vector_id = f"verify-{uuid.uuid4().hex[:8]}"

    async with VectorizeVectorStore(config) as store:
        try:
            await store.initialize()
            print("✅ Index is ready.")

            await store.insert([vector], [vector_id], [{"source": "verify_vectorize"}])
            print(f"✅ Inserted vector {vector_id}. Mutations are applied asynchronously by Vectorize.")

            results = await store.search(vector, limit=3)
            print(f"✅ Search returned {len(results)} result(s):")
            for r in results:
                print(f"- {r.id} | score={r.score} | payload={r.payload}")

            fetched = await store.get(vector_id)
            print(f"✅ Get returned: {fetched}")

            await store.delete(vector_id)
            print(f"✅ Deleted vector {vector_id}.")
        except Exception as e:
            print(f"❌ Verification failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
