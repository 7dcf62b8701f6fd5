"""
smollauncher - 小巧的 Minecraft 启动器

使用微软账户登录并安装、启动原版 Minecraft。
"""

__version__ = "0.1.0"
