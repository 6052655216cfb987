"""筛选守卫与排名策略测试"""

import pytest

from yrank.ranking import (
    ATTRACTION_RANK,
    DISPLAY_ORDER,
    FilterState,
    RankingPolicy,
    can_rank,
)


class TestCanRank:
    """can_rank 测试"""

    def test_unfiltered_allows_ranking(self):
        """测试未筛选时允许排序"""
        assert can_rank(FilterState()) is True
        assert can_rank(None) is True

    def test_whitespace_search_counts_as_empty(self):
        """测试只有空白的搜索关键字视为未搜索"""
        assert can_rank(FilterState(search_text="   \t")) is True

    def test_search_text_blocks_ranking(self):
        """测试有搜索关键字时禁止排序"""
        assert can_rank(FilterState(search_text="bali")) is False
        assert can_rank(FilterState(search_text="  bali  ")) is False

    def test_category_filter_blocks_ranking(self):
        """测试分类筛选时禁止排序"""
        assert can_rank(FilterState(categories={"province": "Bali"})) is False

    @pytest.mark.parametrize("value", ["all", None, ""])
    def test_all_category_allows_ranking(self, value):
        """测试分类为 all 或未设置时允许排序"""
        assert can_rank(FilterState(categories={"province": value})) is True

    def test_mixed_categories(self):
        """测试任一分类生效即禁止排序"""
        state = FilterState(categories={"province": "all", "type": "beach"})
        assert can_rank(state) is False


class TestFilterState:
    """FilterState 测试"""

    def test_to_query_skips_unfiltered(self):
        """测试查询参数只包含生效的条件"""
        state = FilterState(search_text=" ubud ", categories={"province": "Bali", "type": "all"})
        assert state.to_query() == {"province": "Bali", "search": "ubud"}

    def test_with_helpers_return_new_state(self):
        """测试 with_* 返回新对象"""
        state = FilterState()
        searched = state.with_search("x")
        categorized = state.with_category("province", "Bali")

        assert state.search_text == ""
        assert searched.search_text == "x"
        assert categorized.categories == {"province": "Bali"}
        assert state.categories == {}

    def test_hashable(self):
        """测试可以作为字典键"""
        a = FilterState(categories={"province": "Bali"})
        b = FilterState(categories={"province": "Bali"})
        assert a == b
        assert hash(a) == hash(b)


class TestRankingPolicy:
    """RankingPolicy 测试"""

    def test_one_based_rank(self):
        """测试从 1 开始的排名"""
        assert ATTRACTION_RANK.rank_for(0) == 1
        assert ATTRACTION_RANK.rank_for(4, page_base_offset=20) == 25

    def test_zero_based_rank(self):
        """测试从 0 开始的排名"""
        assert DISPLAY_ORDER.rank_for(0) == 0
        assert DISPLAY_ORDER.rank_for(4, page_base_offset=20) == 24

    def test_page_base_offset(self):
        """测试页基准偏移"""
        assert RankingPolicy.page_base_offset(1, 20) == 0
        assert RankingPolicy.page_base_offset(3, 20) == 40

    def test_invalid_arguments(self):
        """测试非法参数"""
        with pytest.raises(ValueError):
            RankingPolicy.page_base_offset(0, 20)
        with pytest.raises(ValueError):
            RankingPolicy.page_base_offset(1, 0)
        with pytest.raises(ValueError):
            DISPLAY_ORDER.rank_for(-1)

    def test_index_for_inverts_rank_for(self):
        """测试排名反算索引"""
        assert ATTRACTION_RANK.index_for(25, page_base_offset=20) == 4
        assert DISPLAY_ORDER.index_for(24, page_base_offset=20) == 4
        assert ATTRACTION_RANK.index_for(20, page_base_offset=20) is None
