import os
from dotenv import load_dotenv

load_dotenv()

class QdrantSettings:
    """Qdrant Vector Database Configuration"""
    
    # Connection settings; URL wins over host/port when set
    URL: str = os.environ.get("QDRANT_URL", "")
    HOST: str = os.environ.get("QDRANT_HOST", "localhost")
    PORT: int = int(os.environ.get("QDRANT_PORT", 6333))
    API_KEY: str = os.environ.get("QDRANT_API_KEY", "")
    
    # Collection settings
    COLLECTION_NAME: str = os.environ.get("QDRANT_COLLECTION_NAME", "research_papers")
    VECTOR_SIZE: int = int(os.environ.get("QDRANT_VECTOR_SIZE", 384))  # all-MiniLM-L6-v2 dimension
    
    # Minimum cosine similarity for a stored summary to count as a cache hit
    MIN_SCORE: float = float(os.environ.get("CACHE_MIN_SCORE", 0.5))
    
    # Connection timeout settings
    TIMEOUT: int = int(os.environ.get("QDRANT_TIMEOUT", 10))
    
    # SSL/HTTPS settings
    USE_HTTPS: bool = os.environ.get("QDRANT_USE_HTTPS", "false").lower() == "true"

qdrant_settings = QdrantSettings()
