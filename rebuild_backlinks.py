#!/usr/bin/env python3
"""
离线维护：重建所有已发布文章的反向链接，并重算所有想法的文章数
用于修复发布/更新时附带操作失败留下的不一致
"""

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError

from thinkpress.core.database import SessionLocal
from thinkpress.services.backlinks import rebuild_all_backlinks
from thinkpress.services.ideas import recount_all_ideas


def run(skip_ideas: bool = False) -> int:
    db = SessionLocal()
    try:
        print("开始重建反向链接...")
        result = rebuild_all_backlinks(db)
        print(f"✓ 处理文章 {result['processed']} 篇，写入引用 {result['references']} 条")
        if result["failed"]:
            print(f"✗ 失败 {result['failed']} 篇，详见日志")

        if not skip_ideas:
            print("\n开始重算想法文章数...")
            count = recount_all_ideas(db)
            print(f"✓ 已重算 {count} 个想法")

        return 1 if result["failed"] else 0
    except SQLAlchemyError as e:
        print(f"\n✗ 错误: {e}")
        db.rollback()
        return 1
    finally:
        db.close()
        print("\n数据库连接已关闭")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="重建反向链接与想法计数")
    parser.add_argument("--skip-ideas", action="store_true", help="只重建反向链接，不重算想法计数")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    raise SystemExit(run(skip_ideas=args.skip_ideas))
