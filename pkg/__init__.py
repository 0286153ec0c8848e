"""通用基础库：日志、HTTP 客户端、第三方登录等"""
