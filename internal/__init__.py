"""第三方登录服务（FastAPI 应用层）"""

from pathlib import Path

BASE_DIR: Path = Path(__file__).parent.parent.absolute()
