"""第三方登录测试"""
