import os

# 测试期间不写日志文件，且不依赖真实凭据
os.environ.setdefault("LOG_DISABLE_FILE", "true")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
