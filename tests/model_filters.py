from model_filter import ModelFilter


class PostFilter(ModelFilter):
    relations = {
        "category": ["category_name"],
        "comments": {"comment": "body"},
        "author": {"author_email": "email"},
    }

    def title(self, value):
        self.where_like("title", value)

    def status(self, value):
        self.where("status", value)

    def category(self, value):
        self.where("category_id", value)

    def publishedAfter(self, value):
        self.where("published_at", ">=", value)

    def tag(self, value):
        self.where_has("tags", lambda query: query.where("name", value))

    def commentsSetup(self, query):
        query.where("approved", True)


class CategoryFilter(ModelFilter):
    relations = {"posts": ["title"]}

    def categoryName(self, value):
        self.where("name", value)

    def name(self, value):
        self.where_like("name", value)


class AuthorFilter(ModelFilter):
    def email(self, value):
        self.where("email", value)


class ApprovedCommentFilter(ModelFilter):
    def setup(self):
        self.where("approved", True)

    def body(self, value):
        self.where_like("body", value)


class TagFilter(ModelFilter):
    def name(self, value):
        self.where("name", value)
