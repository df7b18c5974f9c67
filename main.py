"""
Smenuberu API - 主入口點
"""
import sys
import os

# 確保當前目錄在 Python 路徑中
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

if __name__ == "__main__":
    from smenuberu.main import main
    main()
